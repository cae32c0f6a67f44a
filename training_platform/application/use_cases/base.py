from ...domain.entities import User
from ...domain.exceptions import NotFoundError
from ..dto import Actor
from ..ports import IUnitOfWork


def load_actor(uow: IUnitOfWork, actor: Actor) -> User:
    # роль берём из хранилища, а не из токена: смена роли действует сразу
    user = uow.users.get(actor.user_id)
    if user is None:
        raise NotFoundError.user(actor.user_id)
    return user
