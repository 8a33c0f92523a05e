"""User management under the authorization policy."""

import pytest

from fleet.domain.enums import Role, UserStatus
from fleet.domain.errors import Conflict, Forbidden, NotFound, ValidationError
from fleet.services.users import UserService
from tests.conftest import PASSWORD


@pytest.fixture
def users(store, resolver):
    return UserService(store, resolver)


class TestAdmin:
    @pytest.mark.asyncio
    async def test_updates_position_only(self, fleet, users):
        user = await users.update_user(fleet["admin"], "u-user", {"position": "driver"})
        assert user.position == "driver"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("patch", [
        {"name": "Renamed"},
        {"position": "driver", "name": "Renamed"},
        {"role": "admin"},
        {"status": "rejected"},
    ])
    async def test_other_fields_are_rejected_whole(self, fleet, users, store, patch):
        with pytest.raises(Forbidden):
            await users.update_user(fleet["admin"], "u-user", patch)

        user = await store.users.get_by_id("u-user")
        assert user.name == "u-user"
        assert user.position == "staff"
        assert user.role == Role.USER

    @pytest.mark.asyncio
    async def test_own_record_is_position_only_too(self, fleet, users):
        with pytest.raises(Forbidden):
            await users.update_user(fleet["admin"], "u-admin", {"name": "Me"})

    @pytest.mark.asyncio
    async def test_reads_and_lists_users(self, fleet, users):
        listed = await users.list_users(fleet["admin"])
        assert {u.id for u in listed} == {"u-super", "u-admin", "u-user", "u-other"}
        assert (await users.get_user(fleet["admin"], "u-other")).id == "u-other"

    @pytest.mark.asyncio
    async def test_cannot_create_or_delete(self, fleet, users):
        with pytest.raises(Forbidden):
            await users.create_user(
                fleet["admin"], {"email": "x@example.com", "password": PASSWORD}
            )
        with pytest.raises(Forbidden):
            await users.delete_user(fleet["admin"], "u-user")


class TestUser:
    @pytest.mark.asyncio
    async def test_updates_own_profile(self, fleet, users, resolver):
        user = await users.update_user(
            fleet["user"], "u-user", {"name": "Iryna", "password": "new-password"}
        )

        assert user.name == "Iryna"
        assert resolver.verify_password("new-password", user.password_hash)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("patch", [{"role": "superadmin"}, {"status": "active"}])
    async def test_cannot_touch_own_role_or_status(self, fleet, users, patch):
        with pytest.raises(Forbidden):
            await users.update_user(fleet["user"], "u-user", patch)

    @pytest.mark.asyncio
    async def test_cannot_touch_another_user(self, fleet, users):
        with pytest.raises(Forbidden):
            await users.get_user(fleet["user"], "u-other")
        with pytest.raises(Forbidden):
            await users.update_user(fleet["user"], "u-other", {"name": "x"})

    @pytest.mark.asyncio
    async def test_cannot_list_users(self, fleet, users):
        with pytest.raises(Forbidden):
            await users.list_users(fleet["user"])

    @pytest.mark.asyncio
    async def test_reads_own_record(self, fleet, users):
        assert (await users.get_user(fleet["user"], "u-user")).email == "user@example.com"


class TestSuperadmin:
    @pytest.mark.asyncio
    async def test_creates_active_user_with_hashed_password(self, fleet, users, resolver):
        user = await users.create_user(
            fleet["superadmin"],
            {"email": "new@example.com", "password": PASSWORD, "role": Role.ADMIN},
        )

        assert user.status == UserStatus.ACTIVE
        assert user.role == Role.ADMIN
        assert user.password_hash != PASSWORD
        identity = await resolver.authenticate("new@example.com", PASSWORD)
        assert identity.role == Role.ADMIN

    @pytest.mark.asyncio
    async def test_updates_role_and_status(self, fleet, users):
        user = await users.update_user(
            fleet["superadmin"], "u-user",
            {"role": Role.ADMIN, "status": UserStatus.REJECTED},
        )
        assert user.role == Role.ADMIN
        assert user.status == UserStatus.REJECTED

    @pytest.mark.asyncio
    async def test_deletes_user(self, fleet, users, store):
        await users.delete_user(fleet["superadmin"], "u-other")

        assert await store.users.get_by_id("u-other") is None
        with pytest.raises(NotFound):
            await users.delete_user(fleet["superadmin"], "u-other")

    @pytest.mark.asyncio
    async def test_duplicate_email(self, fleet, users):
        with pytest.raises(Conflict):
            await users.create_user(
                fleet["superadmin"], {"email": "user@example.com", "password": PASSWORD}
            )
        with pytest.raises(Conflict):
            await users.update_user(
                fleet["superadmin"], "u-user", {"email": "other@example.com"}
            )

    @pytest.mark.asyncio
    async def test_required_fields_cannot_be_nulled(self, fleet, users):
        with pytest.raises(ValidationError):
            await users.update_user(fleet["superadmin"], "u-user", {"email": None})

    @pytest.mark.asyncio
    async def test_unknown_user(self, fleet, users):
        with pytest.raises(NotFound):
            await users.update_user(fleet["superadmin"], "missing", {"name": "x"})


@pytest.mark.asyncio
async def test_ensure_superadmin_is_idempotent(database, users, store):
    first = await users.ensure_superadmin("boot@example.com", "boot-password")
    second = await users.ensure_superadmin("boot@example.com", "other-password")

    assert first.id == second.id
    assert first.role == Role.SUPERADMIN
    assert await users.ensure_superadmin(None, None) is None
    assert len(await store.users.find()) == 1


@pytest.mark.asyncio
async def test_own_email_in_other_case_is_not_a_conflict(fleet, users):
    user = await users.update_user(
        fleet["superadmin"], "u-user", {"email": "USER@example.com"}
    )
    assert user.email == "user@example.com"
