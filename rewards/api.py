from typing import Optional

from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import InternalError, RewardsError, ValidationError
from .logging_config import get_logger, setup_logging
from .models import (
    AdminOverview,
    AuthResult,
    CompleteTaskRequest,
    Dashboard,
    LedgerHistoryResponse,
    LoginRequest,
    OkResponse,
    SignupRequest,
    TaskCompletion,
    TaskList,
    UnresolvedReferrals,
    User,
    WithdrawalList,
    WithdrawalRequest,
    WithdrawalResult,
)
from .service import RewardsService
from .settings import settings

logger = get_logger(__name__)


def bearer_token(
    x_token: Optional[str] = Header(default=None),
    authorization: Optional[str] = Header(default=None),
) -> Optional[str]:
    if x_token:
        return x_token
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return None


def create_app(service: Optional[RewardsService] = None) -> FastAPI:
    service = service or RewardsService.from_settings(settings)

    app = FastAPI(
        title="Referral Rewards API",
        description="Signup, referral bonuses, task rewards and withdrawals over a single ledger document",
        version="1.0.0",
    )
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=service.settings.origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RewardsError)
    async def rewards_error_handler(request: Request, exc: RewardsError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("request_failed", path=request.url.path, code=exc.code, error=exc.message)
        else:
            logger.info("request_rejected", path=request.url.path, code=exc.code, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = ValidationError("Malformed request body")
        logger.info("request_rejected", path=request.url.path, code=error.code, errors=len(exc.errors()))
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled_error", path=request.url.path)
        error = InternalError("Server error")
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    def current_user(token: Optional[str] = Depends(bearer_token)) -> User:
        return service.identity.authenticate(token)

    def require_admin(x_admin_key: Optional[str] = Header(default=None)) -> None:
        service.dashboard.authorize_admin(x_admin_key)

    @app.get("/api/health", tags=["System"])
    def health_check():
        return {"status": "healthy", "service": service.settings.app_name}

    @app.post("/api/signup", response_model=AuthResult, tags=["Auth"])
    def signup(request: SignupRequest) -> AuthResult:
        return service.identity.signup(request.name, request.email, request.ref)

    @app.post("/api/login", response_model=AuthResult, tags=["Auth"])
    def login(request: LoginRequest) -> AuthResult:
        return service.identity.login(request.email)

    @app.post("/api/logout", response_model=OkResponse, tags=["Auth"])
    def logout(token: Optional[str] = Depends(bearer_token)) -> OkResponse:
        service.identity.logout(token)
        return OkResponse()

    @app.get("/api/tasks", response_model=TaskList, tags=["Tasks"])
    def list_tasks() -> TaskList:
        return TaskList(tasks=service.tasks.list_tasks())

    @app.post("/api/tasks/complete", response_model=TaskCompletion, tags=["Tasks"])
    def complete_task(request: CompleteTaskRequest, user: User = Depends(current_user)) -> TaskCompletion:
        return service.tasks.complete_task(user.id, request.task_id)

    @app.get("/api/dashboard", response_model=Dashboard, tags=["Users"])
    def dashboard(user: User = Depends(current_user)) -> Dashboard:
        return service.dashboard.get_dashboard(user.id)

    @app.get("/api/ledger", response_model=LedgerHistoryResponse, tags=["Users"])
    def ledger_history(limit: int = 50, offset: int = 0, user: User = Depends(current_user)) -> LedgerHistoryResponse:
        return service.dashboard.get_ledger_history(user.id, limit, offset)

    @app.post("/api/withdraw", response_model=WithdrawalResult, tags=["Withdrawals"])
    def withdraw(request: WithdrawalRequest, user: User = Depends(current_user)) -> WithdrawalResult:
        withdrawal = service.withdrawals.request_withdrawal(user.id, request.amount, request.method)
        return WithdrawalResult(ok=True, withdrawal=withdrawal)

    @app.get("/api/withdrawals", response_model=WithdrawalList, tags=["Withdrawals"])
    def list_withdrawals(user: User = Depends(current_user)) -> WithdrawalList:
        return WithdrawalList(withdrawals=service.withdrawals.list_withdrawals(user.id))

    @app.get("/api/admin/users", response_model=AdminOverview, tags=["Admin"],
             dependencies=[Depends(require_admin)])
    def admin_users() -> AdminOverview:
        return service.dashboard.admin_overview()

    @app.get("/api/admin/referrals/unresolved", response_model=UnresolvedReferrals, tags=["Admin"],
             dependencies=[Depends(require_admin)])
    def unresolved_referrals() -> UnresolvedReferrals:
        return service.dashboard.unresolved_referrals()

    return app


setup_logging(settings)
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
