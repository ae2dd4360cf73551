"""
File service - Proposal attachments

Blobs live in the private R2 bucket under `proposals/{proposalId}/`. Documents
store the object key in `fileName`; download URLs are presigned on every read.
"""

import logging
from typing import Optional

from fastapi import HTTPException

from ...auth import CurrentUser
from ...services.activity_service import log_activity
from ...shared.roles import BDM, COO, DESIGN_LEAD, DESIGNER, DIRECTOR, ESTIMATOR
from ...shared.validators import utcnow
from ...storage import build_key, delete_blob, generate_presigned_url, upload_blob
from ..proposals.repository import ProposalRepository
from .repository import FileRepository
from .schemas import FileType, LinkUpload

logger = logging.getLogger(__name__)

ESTIMATION_VIEWER_ROLES = (ESTIMATOR, COO, DIRECTOR)
PROJECT_FILE_UPLOADER_ROLES = (BDM, DESIGN_LEAD, DESIGNER)
# A BDM sees estimation files once the price has been signed off
BDM_ESTIMATION_STATUSES = ("approved", "submitted_to_client")


def can_access_file(file: dict, proposal: Optional[dict], user: CurrentUser) -> bool:
    is_owner = bool(proposal) and proposal.get("createdByUid") == user.uid
    if user.role == BDM and not is_owner:
        return False
    if not file.get("proposalId"):
        return user.role != BDM

    file_type = file.get("fileType") or FileType.PROJECT.value
    if file_type in (FileType.PROJECT.value, FileType.LINK.value):
        return True
    if file_type == FileType.ESTIMATION.value:
        if user.role in ESTIMATION_VIEWER_ROLES:
            return True
        return user.role == BDM and proposal.get("status") in BDM_ESTIMATION_STATUSES
    return False


def check_upload_permissions(store, user: CurrentUser, proposal_id: Optional[str], file_type: str) -> None:
    if user.role == BDM and proposal_id:
        proposal = ProposalRepository.get(store, proposal_id)
        if not proposal or proposal.get("createdByUid") != user.uid:
            raise HTTPException(status_code=403, detail="Access denied: You can only add files to your own proposals.")
    if file_type == FileType.ESTIMATION.value and user.role != ESTIMATOR:
        raise HTTPException(status_code=403, detail="Access denied: Only estimators can upload estimation files.")
    if file_type == FileType.PROJECT.value and user.role not in PROJECT_FILE_UPLOADER_ROLES:
        raise HTTPException(status_code=403, detail="Access denied: You do not have permission to upload project files.")


class FileService:
    def __init__(self, store):
        self.store = store
        self.repo = FileRepository()

    def _present(self, file: dict, user: CurrentUser) -> dict:
        presented = dict(file)
        if file.get("fileType") != FileType.LINK.value and file.get("fileName"):
            presented["url"] = generate_presigned_url(file["fileName"])
        presented["canDelete"] = file.get("uploadedByUid") == user.uid or user.role == DIRECTOR
        return presented

    def _visible(self, files: list[dict], user: CurrentUser) -> list[dict]:
        proposals = {
            p["id"]: p
            for p in ProposalRepository.get_many(self.store, [f["proposalId"] for f in files if f.get("proposalId")])
        }
        return [self._present(f, user) for f in files if can_access_file(f, proposals.get(f.get("proposalId")), user)]

    def get_file(self, file_id: str, user: CurrentUser) -> dict:
        file = self.repo.get(self.store, file_id)
        if not file:
            raise HTTPException(status_code=404, detail="File not found")
        proposal = ProposalRepository.get(self.store, file["proposalId"]) if file.get("proposalId") else None
        if not can_access_file(file, proposal, user):
            raise HTTPException(status_code=403, detail="Access denied.")
        return self._present(file, user)

    def list_files(self, user: CurrentUser, proposal_id: Optional[str] = None) -> list[dict]:
        if proposal_id:
            if user.role == BDM:
                proposal = ProposalRepository.get(self.store, proposal_id)
                if not proposal or proposal.get("createdByUid") != user.uid:
                    raise HTTPException(status_code=403, detail="Access denied to this proposal.")
            files = self.repo.list_for_proposal(self.store, proposal_id)
        elif user.role == BDM:
            own_ids = [p["id"] for p in ProposalRepository.list_by_creator(self.store, user.uid)]
            if not own_ids:
                return []
            files = self.repo.list_for_proposals(self.store, own_ids)
        else:
            files = self.repo.list_all(self.store)
        return self._visible(files, user)

    def upload_file(
        self,
        user: CurrentUser,
        filename: str,
        contents: bytes,
        content_type: Optional[str],
        proposal_id: Optional[str] = None,
        file_type: str = FileType.PROJECT.value,
    ) -> dict:
        if file_type not in (FileType.PROJECT.value, FileType.ESTIMATION.value):
            raise HTTPException(status_code=400, detail=f"Invalid file type: {file_type}")
        check_upload_permissions(self.store, user, proposal_id, file_type)
        logger.info(f"📤 Backend upload: {filename} ({len(contents) / 1024 / 1024:.2f} MB)")

        key = build_key(f"proposals/{proposal_id or 'general'}", filename)
        try:
            upload_blob(key, contents, content_type)
        except Exception as e:
            logger.error(f"❌ Failed to upload {filename}: {e}")
            raise HTTPException(status_code=500, detail="Failed to upload file") from e

        file_data = {
            "fileName": key,
            "originalName": filename,
            "mimeType": content_type,
            "fileSize": len(contents),
            "proposalId": proposal_id,
            "fileType": file_type,
            "uploadedAt": utcnow(),
            "uploadedByUid": user.uid,
            "uploadedByName": user.name,
            "uploadedByRole": user.role,
        }
        file_id = self.repo.create(self.store, file_data)
        log_activity(
            self.store, "file_uploaded", f"File uploaded: {filename}", user, proposalId=proposal_id, fileId=file_id
        )
        logger.info(f"✅ File record saved: {file_id}")
        return self._present({"id": file_id, **file_data}, user)

    def add_links(self, data: LinkUpload, user: CurrentUser) -> list[dict]:
        check_upload_permissions(self.store, user, data.proposalId, FileType.LINK.value)
        logger.info(f"📎 Uploading {len(data.links)} link(s)")

        saved = []
        for link in data.links:
            link_data = {
                "originalName": link.title or link.url,
                "url": link.url,
                "mimeType": "text/url",
                "fileSize": 0,
                "proposalId": data.proposalId,
                "fileType": FileType.LINK.value,
                "linkDescription": link.description or "",
                "uploadedAt": utcnow(),
                "uploadedByUid": user.uid,
                "uploadedByName": user.name,
                "uploadedByRole": user.role,
            }
            saved.append({"id": self.repo.create(self.store, link_data), **link_data})

        log_activity(self.store, "links_added", f"Added {len(saved)} link(s)", user, proposalId=data.proposalId)
        return saved

    def delete_file(self, file_id: str, user: CurrentUser) -> None:
        file = self.repo.get(self.store, file_id)
        if not file:
            raise HTTPException(status_code=404, detail="File not found")
        if file.get("uploadedByUid") != user.uid and user.role != DIRECTOR:
            raise HTTPException(status_code=403, detail="You can only delete files you uploaded.")

        if file.get("fileType") != FileType.LINK.value and file.get("fileName"):
            delete_blob(file["fileName"])
        self.repo.delete(self.store, file_id)

        log_activity(
            self.store,
            "file_deleted",
            f"File deleted: {file.get('originalName') or file.get('fileName')}",
            user,
            proposalId=file.get("proposalId"),
            fileId=file_id,
        )
