"""Grading workflow routes."""

from __future__ import annotations

import decimal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from gradeflow import grading
from gradeflow.auth import AuthContext, require_admin, require_examiner
from gradeflow.core import di
from gradeflow.core.config import GradingSettings
from gradeflow.grading.block import load_block
from gradeflow.grading.errors import ExaminerNotFound
from gradeflow.lib import NotSet
from gradeflow.model import AssignmentID, AssignmentStatus, ExaminerID, Priority, ResultID, SubjectID
from gradeflow.storage import assignment as assignment_storage
from gradeflow.storage import block as block_storage
from gradeflow.storage import result as result_storage

from ..view.grading import ApprovalResponse, ApproveRequest, AssignmentCreateRequest, AssignmentListResponse, \
    AssignmentResponse, AssignmentStatsResponse, AssignmentUpdateRequest, AutoAssignRequest, AutoAssignResponse, \
    BlockAssignmentResponse, BlockDetailResponse, BlockResponse, BlockStatsResponse, ComparisonResponse, \
    MyAssignmentsResponse, PendingBlockListResponse, PendingBlockResponse, ResultListResponse, ResultResponse, \
    ResultStatsResponse, ResultSubmitRequest, ResultUpdateRequest, StatsResponse, SubmitResultResponse, \
    ThirdRoundRequest

router = APIRouter(prefix="/api/grading", tags=["grading"])


def _page_size(limit: int | None, config: GradingSettings) -> int:
    return min(limit or config.page_size, config.max_page_size)


@router.get("/pending-blocks", operation_id="list_pending_blocks")
@di.inject
def list_pending_blocks(
    subject_id: SubjectID | None = Query(None),
    exam_id: str | None = Query(None),
    limit: int | None = Query(None, ge=1),
    auth: AuthContext = Depends(require_admin),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> PendingBlockListResponse:
    """Unapproved blocks that still lack a first or second round examiner."""
    with session.begin():
        blocks = block_storage.find_pending(subject_id=subject_id, exam_id=exam_id, limit=limit, session=session)
    return PendingBlockListResponse(
        blocks=[PendingBlockResponse.from_model(b) for b in blocks],
        total=len(blocks),
    )


@router.get("/blocks/{block_code}", operation_id="get_block")
@di.inject
def get_block(
    block_code: str,
    auth: AuthContext = Depends(require_admin),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> BlockDetailResponse:
    with session.begin():
        block = load_block(block_code, session=session)
        assignments = assignment_storage.for_block(block_code, session=session)
        outcome = grading.compare_block(block_code, session=session)
    return BlockDetailResponse(
        block=BlockResponse.from_model(block),
        assignments=[AssignmentResponse.from_model(a) for a in assignments],
        comparison=ComparisonResponse.from_model(outcome),
    )


@router.post("/assignments", operation_id="create_assignment", status_code=status.HTTP_201_CREATED)
@di.inject
def create_assignment(
    request: AssignmentCreateRequest,
    auth: AuthContext = Depends(require_admin),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> AssignmentResponse:
    """Assign one round of a block to an examiner."""
    with session.begin():
        assignment = grading.create_assignment(
            request.block_code,
            request.examiner_id,
            request.round_number,
            priority=request.priority,
            deadline=request.deadline,
            assigned_by=auth.user.user_id,
            session=session,
        )
    return AssignmentResponse.from_model(assignment)


@router.post("/assignments/auto-assign", operation_id="auto_assign")
@di.inject
def auto_assign(
    request: AutoAssignRequest,
    auth: AuthContext = Depends(require_admin),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> AutoAssignResponse:
    """Assign the first rounds of many blocks; each block succeeds or fails on its own."""
    # auto_assign opens one transaction per block
    report = grading.auto_assign(
        request.block_codes,
        examiners_per_block=request.examiners_per_block,
        priority=request.priority,
        deadline=request.deadline,
        assigned_by=auth.user.user_id,
        session=session,
    )
    return AutoAssignResponse(
        results=[
            BlockAssignmentResponse(
                block_code=o.block_code,
                success=o.success,
                assignments=[AssignmentResponse.from_model(a) for a in o.assignments],
                reason=o.reason,
            )
            for o in report.outcomes
        ],
        success_count=report.success_count,
        failure_count=report.failure_count,
    )


@router.get("/assignments", operation_id="list_assignments")
@di.inject
def list_assignments(
    examiner_id: ExaminerID | None = Query(None),
    block_code: str | None = Query(None),
    assignment_status: AssignmentStatus | None = Query(None, alias="status"),
    round_number: int | None = Query(None, ge=1, le=3),
    priority: Priority | None = Query(None),
    limit: int | None = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    auth: AuthContext = Depends(require_admin),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
    config: GradingSettings = Depends(di.Provide["config.grading", di.as_(GradingSettings)]),
) -> AssignmentListResponse:
    limit = _page_size(limit, config)
    filters = {
        "examiner_id": examiner_id,
        "block_code": block_code,
        "status": assignment_status,
        "round_number": round_number,
        "priority": priority,
    }
    with session.begin():
        assignments = assignment_storage.find(**filters, limit=limit, offset=offset, session=session)
        total = assignment_storage.count(**filters, session=session)
    return AssignmentListResponse(
        assignments=[AssignmentResponse.from_model(a) for a in assignments],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/assignments/{assignment_id}", operation_id="get_assignment")
@di.inject
def get_assignment(
    assignment_id: AssignmentID,
    auth: AuthContext = Depends(require_admin),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> AssignmentResponse:
    with session.begin():
        assignment = assignment_storage.get(assignment_id, session=session)
    if assignment is None:
        raise grading.errors.AssignmentNotFound(f"Assignment {assignment_id} not found")
    return AssignmentResponse.from_model(assignment)


@router.put("/assignments/{assignment_id}", operation_id="update_assignment")
@di.inject
def update_assignment(
    assignment_id: AssignmentID,
    request: AssignmentUpdateRequest,
    auth: AuthContext = Depends(require_admin),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> AssignmentResponse:
    """Change the status, priority or deadline of an open assignment."""
    given = request.model_fields_set
    with session.begin():
        assignment = grading.update_assignment(
            assignment_id,
            status=request.status if "status" in given and request.status is not None else NotSet(),
            priority=request.priority if "priority" in given and request.priority is not None else NotSet(),
            deadline=request.deadline if "deadline" in given else NotSet(),
            session=session,
        )
    return AssignmentResponse.from_model(assignment)


@router.delete("/assignments/{assignment_id}", operation_id="delete_assignment")
@di.inject
def delete_assignment(
    assignment_id: AssignmentID,
    auth: AuthContext = Depends(require_admin),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> AssignmentResponse:
    """Withdraw an assignment that has not been completed. Returns the deleted assignment."""
    with session.begin():
        assignment = grading.delete_assignment(assignment_id, session=session)
    return AssignmentResponse.from_model(assignment)


@router.get("/my-assignments", operation_id="list_my_assignments")
@di.inject
def list_my_assignments(
    assignment_status: AssignmentStatus | None = Query(None, alias="status"),
    limit: int | None = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    auth: AuthContext = Depends(require_examiner),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
    config: GradingSettings = Depends(di.Provide["config.grading", di.as_(GradingSettings)]),
) -> MyAssignmentsResponse:
    """The requesting examiner's assignments, most urgent first."""
    if auth.examiner is None:
        raise ExaminerNotFound(f"No examiner is linked to user {auth.user.user_id}")
    examiner_id = auth.examiner.examiner_id
    with session.begin():
        assignments = assignment_storage.find(
            examiner_id=examiner_id,
            status=assignment_status,
            limit=_page_size(limit, config),
            offset=offset,
            session=session,
        )
        total = assignment_storage.count(examiner_id=examiner_id, status=assignment_status, session=session)
        stats = assignment_storage.stats(examiner_id=examiner_id, session=session)
    return MyAssignmentsResponse(
        examiner_id=examiner_id,
        assignments=[AssignmentResponse.from_model(a) for a in assignments],
        total=total,
        stats=AssignmentStatsResponse.from_model(stats),
    )


@router.post("/results", operation_id="submit_result", status_code=status.HTTP_201_CREATED)
@di.inject
def submit_result(
    request: ResultSubmitRequest,
    auth: AuthContext = Depends(require_examiner),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> SubmitResultResponse:
    """Submit the score for one of the requesting examiner's assignments."""
    if auth.examiner is None:
        raise ExaminerNotFound(f"No examiner is linked to user {auth.user.user_id}")
    with session.begin():
        result, outcome = grading.submit_result(
            request.assignment_id,
            request.score,
            comments=request.comments,
            criteria_scores=request.criteria_scores,
            grading_time_seconds=request.grading_time_seconds,
            examiner_id=auth.examiner.examiner_id,
            session=session,
        )
    return SubmitResultResponse(
        result=ResultResponse.from_model(result),
        comparison=ComparisonResponse.from_model(outcome),
    )


@router.get("/results", operation_id="list_results")
@di.inject
def list_results(
    examiner_id: ExaminerID | None = Query(None),
    block_code: str | None = Query(None),
    is_final: bool | None = Query(None),
    limit: int | None = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    auth: AuthContext = Depends(require_admin),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
    config: GradingSettings = Depends(di.Provide["config.grading", di.as_(GradingSettings)]),
) -> ResultListResponse:
    limit = _page_size(limit, config)
    with session.begin():
        results = result_storage.find(
            examiner_id=examiner_id,
            block_code=block_code,
            is_final=is_final,
            limit=limit,
            offset=offset,
            session=session,
        )
        total = result_storage.count(examiner_id=examiner_id, block_code=block_code, is_final=is_final, session=session)
    return ResultListResponse(
        results=[ResultResponse.from_model(r) for r in results],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.put("/results/{result_id}", operation_id="update_result")
@di.inject
def update_result(
    result_id: ResultID,
    request: ResultUpdateRequest,
    auth: AuthContext = Depends(require_admin),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> ResultResponse:
    """Edit the comments or criteria breakdown of a result before approval."""
    given = request.model_fields_set
    with session.begin():
        result = grading.update_result(
            result_id,
            score=request.score if "score" in given and request.score is not None else NotSet(),
            comments=request.comments if "comments" in given else NotSet(),
            criteria_scores=request.criteria_scores if "criteria_scores" in given else NotSet(),
            session=session,
        )
    return ResultResponse.from_model(result)


@router.get("/compare/{block_code}", operation_id="compare_block")
@di.inject
def compare_block(
    block_code: str,
    max_difference: decimal.Decimal | None = Query(None, ge=0),
    auth: AuthContext = Depends(require_admin),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> ComparisonResponse:
    """Compare the rounds of a block. `max_difference` overrides the tolerance for this request only."""
    with session.begin():
        outcome = grading.compare_block(block_code, tolerance=max_difference, session=session)
    return ComparisonResponse.from_model(outcome)


@router.post(
    "/assign-third-round/{block_code}", operation_id="assign_third_round", status_code=status.HTTP_201_CREATED
)
@di.inject
def assign_third_round(
    block_code: str,
    request: ThirdRoundRequest,
    auth: AuthContext = Depends(require_admin),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> AssignmentResponse:
    with session.begin():
        assignment = grading.assign_third_round(
            block_code,
            priority=request.priority,
            examiner_id=request.examiner_id,
            deadline=request.deadline,
            assigned_by=auth.user.user_id,
            session=session,
        )
    return AssignmentResponse.from_model(assignment)


@router.post("/approve/{block_code}", operation_id="approve_score")
@di.inject
def approve_score(
    block_code: str,
    request: ApproveRequest,
    auth: AuthContext = Depends(require_admin),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> ApprovalResponse:
    """Make the block's score final."""
    with session.begin():
        block, outcome = grading.approve_score(
            block_code,
            final_score=request.final_score,
            decision_reason=request.decision_reason,
            approved_by=auth.user.user_id,
            session=session,
        )
    return ApprovalResponse(block=BlockResponse.from_model(block), comparison=ComparisonResponse.from_model(outcome))


@router.get("/stats", operation_id="get_stats")
@di.inject
def get_stats(
    examiner_id: ExaminerID | None = Query(None),
    auth: AuthContext = Depends(require_admin),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> StatsResponse:
    with session.begin():
        assignments = assignment_storage.stats(examiner_id=examiner_id, session=session)
        results = result_storage.stats(examiner_id=examiner_id, session=session)
        total = block_storage.count(session=session)
        approved = block_storage.count(approved=True, session=session)
    return StatsResponse(
        assignments=AssignmentStatsResponse.from_model(assignments),
        results=ResultStatsResponse.from_model(results),
        blocks=BlockStatsResponse(total=total, approved=approved, pending_approval=total - approved),
    )
