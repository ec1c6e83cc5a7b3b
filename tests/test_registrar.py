import unittest

from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from crudkit.core.container import Container
from crudkit.core.errors import ConfigurationError
from crudkit.routing.decorators import controller, delete, get, guard, post
from crudkit.routing.metadata import MetadataKind, MetadataStore
from crudkit.routing.registrar import build_controller_router, register_controllers


def route_paths(app):
    return sorted(getattr(r, "path", "") for r in app.router.routes)


class RegistrarTest(unittest.TestCase):
    def setUp(self):
        self.store = MetadataStore()
        self.calls = []

    def recorder(self, name):
        calls = self.calls

        def middleware():
            calls.append(name)

        middleware.__name__ = f"mw_{name}"
        return middleware

    def test_routes_are_mounted_under_base_path(self):
        store = self.store

        @controller("/users", store=store)
        class Users:
            @get("/", store=store)
            def list(self):
                return [{"id": 1}]

            @get("/{item_id}", store=store)
            async def one(self, item_id: int):
                return {"id": item_id}

            @delete("/{item_id}", store=store, status_code=204)
            async def remove(self, item_id: int):
                return None

        app = FastAPI()
        register_controllers(app, [Users], store=store)
        client = TestClient(app)

        self.assertEqual(client.get("/users/").json(), [{"id": 1}])
        self.assertEqual(client.get("/users/7").json(), {"id": 7})
        self.assertEqual(client.delete("/users/7").status_code, 204)
        self.assertEqual(client.post("/users/").status_code, 405)

    def test_middlewares_run_class_first_then_route_in_declaration_order(self):
        store = self.store
        class_one, class_two = self.recorder("class_one"), self.recorder("class_two")
        route_mw, guard_one, guard_two = self.recorder("route"), self.recorder("guard_one"), self.recorder("guard_two")

        @controller("/things", store=store)
        @guard(class_one, class_two, store=store)
        class Things:
            @get("/", [route_mw], store=store)
            @guard(guard_two, store=store)
            @guard(guard_one, store=store)
            def list(self):
                return "ok"

        app = FastAPI()
        register_controllers(app, [Things], store=store)
        response = TestClient(app).get("/things/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.calls, ["class_one", "class_two", "route", "guard_one", "guard_two"])

    def test_middleware_can_reject_request(self):
        store = self.store

        def deny():
            raise HTTPException(status_code=403, detail="nope")

        @controller("/secret", store=store)
        class Secret:
            @get("/", store=store)
            @guard(deny, store=store)
            def read(self):
                raise AssertionError("handler must not run")

        app = FastAPI()
        register_controllers(app, [Secret], store=store)
        self.assertEqual(TestClient(app).get("/secret/").status_code, 403)

    def test_method_middlewares_attached_to_class_member(self):
        store = self.store
        extra = self.recorder("extra")

        @controller("/things", store=store)
        class Things:
            @get("/", store=store)
            def list(self):
                return "ok"

        store.attach(MetadataKind.METHOD_MIDDLEWARES, Things, extra, "list")
        app = FastAPI()
        register_controllers(app, [Things], store=store)
        TestClient(app).get("/things/")
        self.assertEqual(self.calls, ["extra"])

    def test_handler_runs_on_resolved_instance(self):
        store = self.store

        class Greeter:
            def greet(self):
                return "hello"

        @controller("/greet", store=store)
        class Greeting:
            def __init__(self, greeter: Greeter):
                self.greeter = greeter

            @get("/", store=store)
            def index(self):
                return self.greeter.greet()

        container = Container()
        container.register(Greeting, lambda c: Greeting(c.resolve(Greeter)))
        app = FastAPI()
        register_controllers(app, [Greeting], resolver=container.resolve, store=store)
        self.assertEqual(TestClient(app).get("/greet/").json(), "hello")

    def test_missing_base_path_mounts_nothing(self):
        store = self.store

        class Good:
            @get("/", store=store)
            def list(self):
                return "ok"

        controller("/good", store=store)(Good)

        class NoPath:
            @get("/", store=store)
            def list(self):
                return "ok"

        app = FastAPI()
        before = route_paths(app)
        with self.assertRaises(ConfigurationError) as ctx:
            register_controllers(app, [Good, NoPath], store=store)
        self.assertIn("Base path is not defined for controller NoPath", ctx.exception.message)
        self.assertEqual(route_paths(app), before)

    def test_invalid_base_path(self):
        store = self.store
        for base_path in ("users", "/users/", ""):
            with self.subTest(base_path=base_path):

                @controller(base_path, store=store)
                class Users:
                    @get("/", store=store)
                    def list(self):
                        return "ok"

                with self.assertRaises(ConfigurationError):
                    build_controller_router(Users, store=store)

    def test_controller_without_routes(self):
        store = self.store

        @controller("/empty", store=store)
        class Empty:
            def helper(self):
                pass

        with self.assertRaises(ConfigurationError) as ctx:
            register_controllers(FastAPI(), [Empty], store=store)
        self.assertIn("No routes defined for controller Empty", ctx.exception.message)

    def test_route_naming_a_missing_handler(self):
        store = self.store

        @controller("/broken", store=store)
        class Broken:
            @get("/", store=store)
            def list(self):
                return "ok"

        # a route entry whose handler was renamed away
        entry = store.read(MetadataKind.ROUTES, Broken)[0]
        store.attach(MetadataKind.ROUTES, Broken, type(entry)(verb="POST", path="/run", handler_name="missing"))

        app = FastAPI()
        before = route_paths(app)
        with self.assertRaises(ConfigurationError) as ctx:
            register_controllers(app, [Broken], store=store)
        self.assertIn("missing", ctx.exception.message)
        self.assertIn("Broken", ctx.exception.message)
        self.assertEqual(route_paths(app), before)

    def test_route_path_must_start_with_slash(self):
        store = self.store

        @controller("/things", store=store)
        class Things:
            @post("run", store=store)
            def run(self):
                return "ok"

        with self.assertRaises(ConfigurationError):
            build_controller_router(Things, store=store)

    def test_handler_errors_are_logged_and_reraised(self):
        store = self.store

        @controller("/boom", store=store)
        class Boom:
            @get("/", store=store)
            def explode(self):
                raise RuntimeError("kaboom")

        app = FastAPI()
        register_controllers(app, [Boom], store=store)
        client = TestClient(app, raise_server_exceptions=False)
        with self.assertLogs("crudkit.routing", level="ERROR") as logs:
            response = client.get("/boom/")
        self.assertEqual(response.status_code, 500)
        self.assertTrue(any("Boom.explode" in line for line in logs.output))
