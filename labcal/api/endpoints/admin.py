"""
Admin Endpoints

Admin console backend: password login and the in-process smoke-test runner.
Tenant CRUD for the console is the public tenant API.
"""
from datetime import timedelta
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from labcal.api.deps import require_admin
from labcal.api.responses import success_response
from labcal.config import get_settings
from labcal.core.exceptions import AuthenticationError, InvalidInputError
from labcal.core.security import ADMIN_SUBJECT, create_access_token, verify_admin_password
from labcal.harness import ApiSession, CleanupRegistry, available_suites, build_suites, run_suites
from labcal.schemas.admin import HarnessRunRequest, LoginRequest, Token
from labcal.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)
settings = get_settings()

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/login", response_model=Token)
async def login(credentials: LoginRequest, request: Request):
    """
    Exchange the admin password for a bearer token.

    NOTE: One shared password from ADMIN_PASSWORD. There are no admin
    accounts.
    """
    if not verify_admin_password(credentials.password):
        log_security_event(
            "failed_login",
            {"client": request.client.host if request.client else None},
            logger
        )
        raise AuthenticationError("Invalid password")

    expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    token = create_access_token({"sub": ADMIN_SUBJECT}, expires_delta=expires)
    logger.info("Admin login")
    return Token(access_token=token, expires_in=int(expires.total_seconds()))


@router.get("/test-suites")
async def list_test_suites(admin: Dict[str, Any] = Depends(require_admin)):
    """List the built-in smoke-test suites."""
    return success_response(available_suites())


@router.post("/test-runs")
async def run_tests(
    run_request: HarnessRunRequest,
    request: Request,
    admin: Dict[str, Any] = Depends(require_admin)
):
    """
    Run smoke-test suites against this application, in-process.

    Requests go through the full ASGI stack (routing, validation, store)
    without touching the network. Tenants the run creates are deleted
    before the report is returned.
    """
    async with ApiSession.for_app(request.app, registry=CleanupRegistry()) as session:
        try:
            suites = build_suites(session, [run_request.suite] if run_request.suite else None)
        except ValueError as e:
            raise InvalidInputError(str(e))

        logger.info(f"Admin test run started: {', '.join(s.name for s in suites)}")
        report = await run_suites(
            suites,
            session=session,
            test_timeout=run_request.timeout,
            run_timeout=run_request.run_timeout,
        )

    return success_response(report.to_dict())
