from taskhub.schemas.user import UserRegister, UserCreate, UserUpdate, UserPublic, UserLogin
from taskhub.schemas.auth import LoginResult, VerificationResult, TokenValidity, TokenRefreshResult, MessageResponse
from taskhub.schemas.task import TaskCreate, TaskUpdate, TaskResponse
from taskhub.schemas.project import (
    ProjectCreate,
    ProjectUpdate,
    ProjectResponse,
    ProjectMembersResponse,
    ProjectTasksResponse,
)
