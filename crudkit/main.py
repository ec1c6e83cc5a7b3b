import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crudkit.api.users import UserController
from crudkit.core.config import Settings
from crudkit.core.container import Container
from crudkit.core.errors import install_error_handlers
from crudkit.core.http_hardening import install_http_hardening
from crudkit.core.logging_setup import configure_logging
from crudkit.db.session import Base, Database
from crudkit.repositories.users import UserRepository
from crudkit.routing.registrar import register_controllers
from crudkit.services.users import UserService

CONTROLLERS = [UserController]


def build_container(database: Database, logger: logging.Logger) -> Container:
    container = Container()
    container.register_instance(Database, database)
    container.register(
        UserRepository,
        lambda c: UserRepository(c.resolve(Database), logger=logger.getChild("repository")),
    )
    container.register(
        UserService,
        lambda c: UserService(c.resolve(UserRepository), logger=logger.getChild("service")),
    )
    container.register(UserController, lambda c: UserController(c.resolve(UserService)))
    return container


def create_app(settings: Settings | None = None, *, database: Database | None = None) -> FastAPI:
    settings = settings or Settings()
    logger = configure_logging(settings)
    database = database or Database.from_settings(settings)
    container = build_container(database, logger)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await database.connect()
        if settings.DATABASE_CREATE_ALL:
            await database.create_all(Base.metadata)
        yield
        await database.disconnect()

    app = FastAPI(title=settings.APP_NAME, version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_http_hardening(app)
    install_error_handlers(app)
    register_controllers(app, CONTROLLERS, resolver=container.resolve, logger=logger.getChild("routing"))

    @app.get("/health")
    def health():
        return {"status": "ok", "database": database.is_connected}

    return app
