"""View models for the grading web application."""

__all__ = [
    # Auth views
    "LoginRequest",
    "LoginResponse",
    "TokenResponse",
    "UserResponse",
    # Assignment views
    "AssignmentCreateRequest",
    "AssignmentListResponse",
    "AssignmentResponse",
    "AssignmentStatsResponse",
    "AssignmentUpdateRequest",
    "AutoAssignRequest",
    "AutoAssignResponse",
    "BlockAssignmentResponse",
    "MyAssignmentsResponse",
    # Result views
    "ResultListResponse",
    "ResultResponse",
    "ResultStatsResponse",
    "ResultSubmitRequest",
    "ResultUpdateRequest",
    "SubmitResultResponse",
    # Block views
    "ApprovalResponse",
    "ApproveRequest",
    "BlockDetailResponse",
    "BlockResponse",
    "BlockStatsResponse",
    "ComparisonResponse",
    "PendingBlockListResponse",
    "PendingBlockResponse",
    "RoundScoreResponse",
    "StatsResponse",
    "ThirdRoundRequest",
]

from .auth import LoginRequest, LoginResponse, TokenResponse, UserResponse
from .grading import ApprovalResponse, ApproveRequest, AssignmentCreateRequest, AssignmentListResponse, \
    AssignmentResponse, AssignmentStatsResponse, AssignmentUpdateRequest, AutoAssignRequest, AutoAssignResponse, \
    BlockAssignmentResponse, BlockDetailResponse, BlockResponse, BlockStatsResponse, ComparisonResponse, \
    MyAssignmentsResponse, PendingBlockListResponse, PendingBlockResponse, ResultListResponse, ResultResponse, \
    ResultStatsResponse, ResultSubmitRequest, ResultUpdateRequest, RoundScoreResponse, StatsResponse, \
    SubmitResultResponse, ThirdRoundRequest
