from fastapi import APIRouter, Depends, Query
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from core.get_current_user import get_current_user
from core.get_db import get_db_async
from core.safe_handler import safe_handler
from models.enums import UnitStatus
from models.models import User
from schemas.schema import UnitCreate, UnitUpdate
from services.unit_service import UnitService

router = APIRouter(tags=["Units"])


@cbv(router)
class UnitRoutes:
    @router.post("/", status_code=201)
    @safe_handler
    async def create_unit(
        self,
        data: UnitCreate,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await UnitService(db).create_unit(data, current_user)

    @router.get("/")
    @safe_handler
    async def list_units(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        building_id: int | None = None,
        status: UnitStatus | None = None,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await UnitService(db).list_units(
            current_user, page=page, limit=limit, building_id=building_id, status=status
        )

    @router.get("/{unit_id}")
    @safe_handler
    async def get_unit(
        self,
        unit_id: int,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await UnitService(db).get_unit(unit_id, current_user)

    @router.put("/{unit_id}")
    @safe_handler
    async def update_unit(
        self,
        unit_id: int,
        data: UnitUpdate,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await UnitService(db).update_unit(unit_id, data, current_user)

    @router.delete("/{unit_id}")
    @safe_handler
    async def delete_unit(
        self,
        unit_id: int,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await UnitService(db).delete_unit(unit_id, current_user)
