"""
Workflow email dispatch via Resend
Resolves recipients from role lists plus event-specific dynamic recipients,
renders the MJML template for the event and sends it
"""

import logging
from typing import Optional

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import render_email

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY

# event -> roles whose members always receive it
EMAIL_RECIPIENT_MAP = {
    "proposal.created": ["coo", "director", "estimator"],
    "estimation.complete": ["coo"],
    "pricing.complete": ["director"],
    "project.approved_by_director": [],  # BDM only, added dynamically
    "project.won": ["coo", "director"],
    "project.allocated": ["coo"],
    "designer.allocated": ["coo"],
    "time_request.created": ["design_lead", "coo", "director"],
    "time_request.approved": ["designer", "design_lead", "director"],
    "time_request.rejected": ["designer", "design_lead"],
    "variation.requested": ["coo", "director"],
    "variation.approved_detail": ["design_lead", "bdm", "director", "coo"],
    "invoice.created": ["coo", "director", "bdm"],
    "invoice.payment_due": ["coo", "director", "bdm"],
    "invoice.overdue": ["coo", "director", "bdm"],
}

BDM_EVENTS = {
    "proposal.created",
    "project.approved_by_director",
    "variation.approved_detail",
    "invoice.created",
    "invoice.payment_due",
    "invoice.overdue",
}
DESIGN_LEAD_EVENTS = {"project.allocated", "time_request.created", "time_request.approved", "time_request.rejected"}
DESIGNER_EVENTS = {"designer.allocated", "time_request.approved", "time_request.rejected"}


def get_emails_for_roles(store, roles: list[str]) -> list[str]:
    if not roles:
        return []
    try:
        users = store.query("users", [("role", "in", [r.lower().strip() for r in roles])])
    except Exception as e:
        logger.error(f"❌ Error fetching role emails: {e}")
        return []
    return [u.get("email") for u in users if u.get("status", "active") == "active" and u.get("email")]


def _user_email(store, uid: Optional[str]) -> Optional[str]:
    if not uid:
        return None
    user = store.get("users", uid)
    return user.get("email") if user else None


def get_bdm_email(store, project_id: Optional[str], proposal_id: Optional[str]) -> Optional[str]:
    try:
        uid = None
        if proposal_id:
            proposal = store.get("proposals", proposal_id)
            uid = proposal.get("createdByUid") if proposal else None
        if not uid and project_id:
            project = store.get("projects", project_id)
            uid = project.get("bdmUid") if project else None
        return _user_email(store, uid)
    except Exception as e:
        logger.error(f"⚠️ Error fetching BDM email: {e}")
        return None


def get_design_lead_email(store, project_id: Optional[str]) -> Optional[str]:
    try:
        project = store.get("projects", project_id) if project_id else None
        return _user_email(store, project.get("designLeadUid")) if project else None
    except Exception as e:
        logger.error(f"⚠️ Error fetching Design Lead email: {e}")
        return None


def resolve_recipients(store, event: str, data: dict) -> list[str]:
    """Role recipients plus BDM / design lead / designer where the event calls for them"""
    recipients = get_emails_for_roles(store, EMAIL_RECIPIENT_MAP.get(event, []))

    if event in BDM_EVENTS:
        bdm_email = data.get("createdByEmail") or data.get("bdmEmail")
        if not bdm_email:
            bdm_email = get_bdm_email(store, data.get("projectId"), data.get("proposalId"))
        if bdm_email:
            recipients.append(bdm_email)

    if event in DESIGN_LEAD_EVENTS:
        lead_email = data.get("designLeadEmail") or get_design_lead_email(store, data.get("projectId"))
        if lead_email:
            recipients.append(lead_email)

    if event in DESIGNER_EVENTS and data.get("designerEmail"):
        recipients.append(data["designerEmail"])

    # De-duplicate while keeping order
    seen = set()
    cleaned = []
    for email in recipients:
        if email and "@" in email and email not in seen:
            seen.add(email)
            cleaned.append(email)
    return cleaned


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    result = mjml_to_html(mjml_content)
    # mjml_to_html returns a dict with 'html' and 'errors' keys
    if isinstance(result, dict):
        if result.get("errors"):
            logger.warning(f"MJML compilation warnings: {result['errors']}")
        return result.get("html", "")
    return str(result)


def send_email_notification(store, event: str, data: dict) -> dict:
    """
    Send the email for a workflow event.

    Never raises. Returns:
        {"success": True, "id", "recipients"} on send,
        {"success": False, "skipped": True, "message"} when nobody should receive it,
        {"success": False, "error"} on failure
    """
    logger.info(f"📨 Email event [{event}]")

    if not RESEND_API_KEY:
        logger.error("❌ RESEND_API_KEY is missing - email not sent")
        return {"success": False, "error": "Missing API Key"}

    recipients = resolve_recipients(store, event, data)
    if not recipients:
        logger.warning(f"⚠️ No valid recipients for '{event}'. Skipping.")
        return {"success": False, "skipped": True, "message": "No recipients found"}

    try:
        subject, mjml_content = render_email(event, data)
        response = resend.Emails.send(
            {
                "from": EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": compile_mjml_to_html(mjml_content),
            }
        )
        email_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
        logger.info(f"✅ Email [{event}] sent to {len(recipients)} recipient(s), id={email_id}")
        return {"success": True, "id": email_id, "recipients": recipients}
    except Exception as e:
        logger.error(f"❌ Email [{event}] send failed: {e}")
        return {"success": False, "error": str(e), "recipients": recipients}
