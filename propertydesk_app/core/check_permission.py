from models.enums import UserRole

from .exceptions import ForbiddenError


class CheckRolePermission:
    async def check_admin(self, current_user):
        if current_user.role != UserRole.ADMIN:
            raise ForbiddenError()

    async def check_authenticated(self, current_user):
        if current_user.role not in {
            UserRole.ADMIN,
            UserRole.OWNER,
            UserRole.TENANT,
        }:
            raise ForbiddenError()

    async def check_admin_or_owner(self, current_user):
        if current_user.role not in {UserRole.ADMIN, UserRole.OWNER}:
            raise ForbiddenError()

    async def check_building_access(self, current_user, building):
        """Admins see every building; owners only the ones they own."""
        if current_user.role == UserRole.ADMIN:
            return
        if current_user.role == UserRole.OWNER and building.owner_id == current_user.id:
            return
        raise ForbiddenError()

    async def check_tenancy_access(self, current_user, building, tenancy):
        if current_user.role == UserRole.TENANT:
            if tenancy.tenant_id != current_user.id:
                raise ForbiddenError()
            return
        await self.check_building_access(current_user, building)

    def scope_filters(self, current_user) -> dict:
        if current_user.role == UserRole.OWNER:
            return {"owner_id": current_user.id}
        if current_user.role == UserRole.TENANT:
            return {"tenant_id": current_user.id}
        return {}
