from ...domain.permissions import Operation, require
from ..dto import Actor, AdminStats
from ..ports import IUnitOfWork
from .base import load_actor


class GetAdminStats:
    def __init__(self, uow: IUnitOfWork):
        self.uow = uow

    def execute(self, actor: Actor) -> AdminStats:
        user = load_actor(self.uow, actor)
        require(user.role, user.id, Operation.VIEW_ADMIN_STATS)
        return AdminStats(
            users_by_role=self.uow.users.count_by_role(),
            courses_by_status=self.uow.courses.count_by_status(),
            enrollments_by_status=self.uow.enrollments.count_by_status(),
        )
