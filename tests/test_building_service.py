"""Tests for building management and owner scoping."""

import pytest

from core.exceptions import ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from models.models import Building
from schemas.schema import BuildingCreate, BuildingUpdate
from services.building_service import BuildingService


def _new_building(**overrides):
    kwargs = {
        "owner_id": 2,
        "name": "Fintas Residence",
        "address": "Block 4, Street 12",
        "city": "Fintas",
    }
    kwargs.update(overrides)
    return BuildingCreate(**kwargs)


class TestCreateBuilding:
    @pytest.mark.asyncio
    async def test_admin_creates_for_owner(self, session, database, seed):
        result = await BuildingService(session).create_building(_new_building(), seed.admin)

        assert result["name"] == "Fintas Residence"
        assert result["country"] == "Kuwait"
        assert result["owner_id"] == seed.owner.id
        assert result["total_units"] == 0
        async with database.session() as s:
            assert (await s.get(Building, result["id"])).city == "Fintas"

    @pytest.mark.asyncio
    async def test_owner_must_exist(self, session, seed):
        with pytest.raises(InvalidInputError) as exc:
            await BuildingService(session).create_building(_new_building(owner_id=99), seed.admin)
        assert exc.value.message == "Owner not found"

    @pytest.mark.asyncio
    async def test_owner_must_have_owner_role(self, session, seed):
        with pytest.raises(InvalidInputError) as exc:
            await BuildingService(session).create_building(
                _new_building(owner_id=seed.tenant.id), seed.admin
            )
        assert exc.value.message == "Specified user is not an Owner"

    @pytest.mark.asyncio
    async def test_only_admin_can_create(self, session, seed):
        with pytest.raises(ForbiddenError):
            await BuildingService(session).create_building(_new_building(), seed.owner)


class TestListBuildings:
    @pytest.mark.asyncio
    async def test_admin_sees_all_with_unit_counts(self, session, seed):
        result = await BuildingService(session).list_buildings(seed.admin)

        counts = {b["name"]: b["total_units"] for b in result["items"]}
        assert counts == {"Hawally Court": 1, "Salmiya Towers": 3}
        assert result["pagination"]["total_items"] == 2

    @pytest.mark.asyncio
    async def test_owner_sees_own_only(self, session, seed):
        result = await BuildingService(session).list_buildings(seed.owner)
        assert [b["id"] for b in result["items"]] == [1]

    @pytest.mark.asyncio
    async def test_city_filter(self, session, seed):
        result = await BuildingService(session).list_buildings(seed.admin, city="Hawally")
        assert [b["id"] for b in result["items"]] == [2]

    @pytest.mark.asyncio
    async def test_tenant_cannot_list(self, session, seed):
        with pytest.raises(ForbiddenError):
            await BuildingService(session).list_buildings(seed.tenant)


class TestGetBuilding:
    @pytest.mark.asyncio
    async def test_owner_reads_own(self, session, seed):
        result = await BuildingService(session).get_building(1, seed.owner)
        assert result["total_units"] == 3

    @pytest.mark.asyncio
    async def test_other_owner_is_forbidden(self, session, seed):
        with pytest.raises(ForbiddenError):
            await BuildingService(session).get_building(1, seed.other_owner)

    @pytest.mark.asyncio
    async def test_missing(self, session, seed):
        with pytest.raises(NotFoundError):
            await BuildingService(session).get_building(99, seed.admin)


class TestUpdateBuilding:
    @pytest.mark.asyncio
    async def test_owner_renames_own_building(self, session, seed):
        result = await BuildingService(session).update_building(
            1, BuildingUpdate(name="Salmiya Towers East"), seed.owner
        )
        assert result["name"] == "Salmiya Towers East"
        assert result["address"] == "Block 10, Street 5"

    @pytest.mark.asyncio
    async def test_only_admin_changes_owner(self, session, database, seed):
        with pytest.raises(ForbiddenError):
            await BuildingService(session).update_building(
                1, BuildingUpdate(owner_id=seed.other_owner.id), seed.owner
            )
        async with database.session() as s:
            assert (await s.get(Building, 1)).owner_id == seed.owner.id

    @pytest.mark.asyncio
    async def test_admin_transfers_to_another_owner(self, session, seed):
        result = await BuildingService(session).update_building(
            1, BuildingUpdate(owner_id=seed.other_owner.id), seed.admin
        )
        assert result["owner_id"] == seed.other_owner.id

    @pytest.mark.asyncio
    async def test_transfer_target_must_be_owner(self, session, seed):
        with pytest.raises(InvalidInputError):
            await BuildingService(session).update_building(
                1, BuildingUpdate(owner_id=seed.tenant.id), seed.admin
            )

    @pytest.mark.asyncio
    async def test_explicit_null_is_invalid_input(self, session, seed):
        with pytest.raises(InvalidInputError) as exc:
            await BuildingService(session).update_building(
                1, BuildingUpdate(name=None), seed.admin
            )
        assert exc.value.message == "name cannot be null"


class TestDeleteBuilding:
    @pytest.mark.asyncio
    async def test_building_with_units_is_kept(self, session, database, seed):
        with pytest.raises(ConflictError):
            await BuildingService(session).delete_building(1, seed.admin)
        async with database.session() as s:
            assert await s.get(Building, 1) is not None

    @pytest.mark.asyncio
    async def test_empty_building_is_deleted(self, session, database, seed):
        async with database.session() as s:
            s.add(
                Building(
                    id=3, owner_id=seed.owner.id, name="Empty Lot",
                    address="Block 1, Street 1", city="Jahra",
                )
            )
            await s.commit()

        result = await BuildingService(session).delete_building(3, seed.admin)

        assert result == {"message": "Building deleted successfully"}
        async with database.session() as s:
            assert await s.get(Building, 3) is None

    @pytest.mark.asyncio
    async def test_owner_cannot_delete(self, session, seed):
        with pytest.raises(ForbiddenError):
            await BuildingService(session).delete_building(1, seed.owner)

    @pytest.mark.asyncio
    async def test_missing(self, session, seed):
        with pytest.raises(NotFoundError):
            await BuildingService(session).delete_building(99, seed.admin)
