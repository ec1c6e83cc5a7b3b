from crudkit.api.crud import CrudController
from crudkit.core.deps import auth_guard
from crudkit.routing.decorators import controller, guard
from crudkit.services.users import UserService


@controller("/api/v1/users")
@guard(auth_guard)
class UserController(CrudController):
    def __init__(self, service: UserService):
        super().__init__(service)
