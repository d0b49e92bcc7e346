from fastapi import APIRouter, Depends

from flashtrend.dependencies import get_query_client, remote_errors, require_identity
from flashtrend.queries import QueryClient
from flashtrend.schemas import ProfileForm, SessionView, UserProfile
from flashtrend.services import session_service

router = APIRouter(prefix="/api/v1/users", tags=["users"])

@router.get("/me", response_model=SessionView)
async def get_session(client: QueryClient = Depends(get_query_client)):
    return await session_service.get_session(client)

@router.get("/me/profile", response_model=UserProfile | None)
async def get_profile(client: QueryClient = Depends(get_query_client)):
    with remote_errors():
        return await session_service.get_profile(client)

@router.put("/me/profile", response_model=UserProfile, dependencies=[Depends(require_identity)])
async def save_profile(form: ProfileForm, client: QueryClient = Depends(get_query_client)):
    with remote_errors():
        return await session_service.save_profile(client, form)

@router.get("/me/role")
async def get_role(client: QueryClient = Depends(get_query_client)):
    with remote_errors():
        role = await session_service.get_role(client)
    return {"role": role.value if role is not None else None}

@router.get("/me/is-admin")
async def is_admin(client: QueryClient = Depends(get_query_client)):
    with remote_errors():
        return {"is_admin": await session_service.is_admin(client)}

@router.get("/{principal}/profile", response_model=UserProfile | None)
async def get_user_profile(principal: str, client: QueryClient = Depends(get_query_client)):
    with remote_errors():
        return await session_service.get_user_profile(client, principal)
