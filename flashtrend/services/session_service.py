"""
Session service: what the layout needs to know about the caller.

The profile-setup prompt is shown only once the profile query has
actually completed for an authenticated caller and found nothing; a
disabled or failed query never triggers it.
"""
from flashtrend.queries import (
    CALLER_PROFILE,
    CALLER_ROLE,
    IS_ADMIN,
    SAVE_PROFILE,
    USER_PROFILE,
    QueryClient,
)
from flashtrend.schemas import (
    ProfileForm,
    QueryStatus,
    SessionView,
    UserProfile,
    UserRole,
)


async def get_session(client: QueryClient) -> SessionView:
    if client.identity is None:
        return SessionView(authenticated=False)

    profile = await client.read(CALLER_PROFILE)
    is_admin = await client.read(IS_ADMIN)
    return SessionView(
        authenticated=True,
        principal=client.identity.principal,
        profile=profile.data,
        is_admin=bool(is_admin.data),
        needs_profile_setup=profile.status is QueryStatus.success and profile.data is None,
    )


async def get_profile(client: QueryClient) -> UserProfile | None:
    return await client.fetch(CALLER_PROFILE)


async def save_profile(client: QueryClient, form: ProfileForm) -> UserProfile:
    profile = UserProfile(name=form.name)
    await client.mutate(SAVE_PROFILE, profile)
    return profile


async def get_user_profile(client: QueryClient, principal: str) -> UserProfile | None:
    return await client.fetch(USER_PROFILE, principal)


async def get_role(client: QueryClient) -> UserRole | None:
    return await client.fetch(CALLER_ROLE)


async def is_admin(client: QueryClient) -> bool:
    """False for anonymous callers, without asking the backend."""
    return bool(await client.fetch(IS_ADMIN))
