"""Tests for the legal (status, designStatus) combinations and the action tables."""

import itertools

import pytest
from fastapi import HTTPException

from ebtracker.domain.deliverables.schemas import DeliverableAction
from ebtracker.domain.deliverables.service import DELIVERABLE_TRANSITIONS
from ebtracker.domain.payments.schemas import PaymentAction
from ebtracker.domain.payments.service import PAYMENT_TRANSITIONS, PaymentService
from ebtracker.domain.projects.repository import ProjectRepository
from ebtracker.domain.projects.schemas import ProjectAction
from ebtracker.domain.projects.service import PROJECT_TRANSITIONS, ProjectService
from ebtracker.domain.projects.states import LEGAL_STATES, DesignStatus, ProjectStatus, is_legal_state
from ebtracker.domain.proposals.schemas import ProposalAction
from ebtracker.domain.proposals.service import PROPOSAL_TRANSITIONS, ProposalService
from ebtracker.domain.submissions.schemas import SubmissionAction
from ebtracker.domain.submissions.service import SUBMISSION_TRANSITIONS, SubmissionService
from ebtracker.domain.tasks.schemas import TaskAction
from ebtracker.domain.tasks.service import TASK_TRANSITIONS, TaskService
from ebtracker.domain.time_requests.schemas import TimeRequestAction
from ebtracker.domain.time_requests.service import TIME_REQUEST_TRANSITIONS
from ebtracker.domain.variations.schemas import VariationAction
from ebtracker.domain.variations.service import VARIATION_TRANSITIONS


class TestLegalStates:
    def test_every_status_has_a_legal_design_status(self):
        for status in ProjectStatus:
            assert LEGAL_STATES[status.value], status

    def test_every_design_status_is_reachable(self):
        reachable = set().union(*LEGAL_STATES.values())
        assert reachable == {d.value for d in DesignStatus}

    @pytest.mark.parametrize(
        "status,design_status,legal",
        [
            ("pending_allocation", "not_started", True),
            ("pending_allocation", "in_progress", False),
            ("assigned", "allocated", True),
            ("assigned", "approved", False),
            ("in_progress", "submitted", True),
            ("in_progress", "completed", False),
            ("on_hold", "rejected", True),
            ("completed", "completed", True),
            ("completed", "in_progress", False),
            ("unknown", "not_started", False),
        ],
    )
    def test_cross_product_samples(self, status, design_status, legal):
        assert is_legal_state(status, design_status) is legal

    def test_cross_product_matches_table(self):
        for status, design in itertools.product(ProjectStatus, DesignStatus):
            assert is_legal_state(status.value, design.value) == (design.value in LEGAL_STATES[status.value])


class TestStateGuardedWrites:
    def test_illegal_update_is_rejected_with_409(self, store, make_project):
        pid = make_project(status="in_progress", designStatus="in_progress")
        project = store.get("projects", pid)

        with pytest.raises(HTTPException) as exc:
            ProjectRepository.update(store, project, {"status": "pending_allocation"})

        assert exc.value.status_code == 409
        assert store.get("projects", pid)["status"] == "in_progress"

    def test_writes_that_do_not_touch_state_pass(self, store, make_project):
        pid = make_project(status="in_progress", designStatus="in_progress")
        project = store.get("projects", pid)

        ProjectRepository.update(store, project, {"hoursLogged": 4})

        assert store.get("projects", pid)["hoursLogged"] == 4

    def test_create_checks_state(self, store):
        with pytest.raises(HTTPException) as exc:
            ProjectRepository.create(store, {"status": "completed", "designStatus": "not_started"})
        assert exc.value.status_code == 409


class TestActionTables:
    @pytest.mark.parametrize(
        "table,actions",
        [
            (PROPOSAL_TRANSITIONS, ProposalAction),
            (PROJECT_TRANSITIONS, ProjectAction),
            (TIME_REQUEST_TRANSITIONS, TimeRequestAction),
            (PAYMENT_TRANSITIONS, PaymentAction),
            (VARIATION_TRANSITIONS, VariationAction),
            (DELIVERABLE_TRANSITIONS, DeliverableAction),
            (TASK_TRANSITIONS, TaskAction),
            (SUBMISSION_TRANSITIONS, SubmissionAction),
        ],
    )
    def test_every_action_has_a_transition(self, table, actions):
        assert set(table) == set(actions)

    @pytest.mark.parametrize(
        "service,actions",
        [
            (ProposalService, ProposalAction),
            (ProjectService, ProjectAction),
            (PaymentService, PaymentAction),
            (TaskService, TaskAction),
            (SubmissionService, SubmissionAction),
        ],
    )
    def test_every_action_has_a_handler(self, service, actions):
        for action in actions:
            assert callable(getattr(service, f"_{action.value}", None)), action
