import unittest

from crudkit.core.errors import ConfigurationError
from crudkit.routing.decorators import controller, get, guard, post, route
from crudkit.routing.metadata import MetadataKind, MetadataStore, collect_routes, controller_metadata


def mw_a():
    pass


def mw_b():
    pass


def mw_c():
    pass


class MetadataStoreTest(unittest.TestCase):
    def setUp(self):
        self.store = MetadataStore()

    def test_list_kinds_append_in_attach_order(self):
        target = object()
        self.store.attach(MetadataKind.CLASS_MIDDLEWARES, target, mw_a)
        self.store.attach(MetadataKind.CLASS_MIDDLEWARES, target, [mw_b, mw_c])
        self.assertEqual(self.store.read(MetadataKind.CLASS_MIDDLEWARES, target), [mw_a, mw_b, mw_c])

    def test_base_path_is_replaced(self):
        target = object()
        self.store.attach(MetadataKind.BASE_PATH, target, "/old")
        self.store.attach(MetadataKind.BASE_PATH, target, "/new")
        self.assertEqual(self.store.read(MetadataKind.BASE_PATH, target), "/new")

    def test_member_name_is_part_of_the_key(self):
        target = object()
        self.store.attach(MetadataKind.METHOD_MIDDLEWARES, target, mw_a, "one")
        self.store.attach(MetadataKind.METHOD_MIDDLEWARES, target, mw_b, "two")
        self.assertEqual(self.store.read(MetadataKind.METHOD_MIDDLEWARES, target, "one"), [mw_a])
        self.assertEqual(self.store.read(MetadataKind.METHOD_MIDDLEWARES, target, "two"), [mw_b])
        self.assertIsNone(self.store.read(MetadataKind.METHOD_MIDDLEWARES, target))
        self.assertEqual(len(self.store), 2)

    def test_read_returns_a_copy(self):
        target = object()
        self.store.attach(MetadataKind.CLASS_MIDDLEWARES, target, mw_a)
        self.store.read(MetadataKind.CLASS_MIDDLEWARES, target).append(mw_b)
        self.assertEqual(self.store.read(MetadataKind.CLASS_MIDDLEWARES, target), [mw_a])

    def test_missing_key_returns_default(self):
        self.assertEqual(self.store.read(MetadataKind.ROUTES, object(), default=[]), [])
        self.assertFalse(self.store.has(MetadataKind.BASE_PATH, object()))

    def test_clear(self):
        self.store.attach(MetadataKind.BASE_PATH, object(), "/x")
        self.store.clear()
        self.assertEqual(len(self.store), 0)


class DecoratorTest(unittest.TestCase):
    def setUp(self):
        self.store = MetadataStore()

    def test_controller_records_base_path_and_routes_in_declaration_order(self):
        store = self.store

        @controller("/users", store=store)
        class Users:
            @get("/", store=store)
            def list(self):
                pass

            @post("/", store=store, status_code=201)
            def create(self):
                pass

            @get("/{item_id}", store=store)
            def one(self, item_id):
                pass

        meta = controller_metadata(Users, store)
        self.assertEqual(meta.base_path, "/users")
        self.assertEqual(
            [(r.verb, r.path, r.handler_name) for r in meta.routes],
            [("GET", "/", "list"), ("POST", "/", "create"), ("GET", "/{item_id}", "one")],
        )
        self.assertEqual(dict(meta.routes[1].options), {"status_code": 201})

    def test_stacked_routes_on_one_method(self):
        store = self.store

        class Health:
            @get("/health", store=store)
            @get("/ping", store=store)
            def check(self):
                pass

        routes = collect_routes(Health, store)
        self.assertEqual([r.path for r in routes], ["/ping", "/health"])
        self.assertEqual({r.handler_name for r in routes}, {"check"})

    def test_unsupported_verb(self):
        with self.assertRaises(ConfigurationError):
            route("TRACE", "/")

    def test_verb_is_case_insensitive(self):
        store = self.store

        class Things:
            @route("get", "/", store=store)
            def list(self):
                pass

        self.assertEqual(collect_routes(Things, store)[0].verb, "GET")

    def test_guards_run_bottom_up_after_route_middlewares(self):
        store = self.store

        class Things:
            @get("/", [mw_a], store=store)
            @guard(mw_c, store=store)
            @guard(mw_b, store=store)
            def list(self):
                pass

        (entry,) = collect_routes(Things, store)
        self.assertEqual(entry.middlewares, (mw_a, mw_b, mw_c))

    def test_class_guard_flattens_lists(self):
        store = self.store

        @controller("/things", store=store)
        @guard([mw_a, mw_b], mw_c, store=store)
        class Things:
            @get("/", store=store)
            def list(self):
                pass

        self.assertEqual(controller_metadata(Things, store).middlewares, [mw_a, mw_b, mw_c])

    def test_undecorated_class_has_no_base_path(self):
        store = self.store

        class Things:
            @get("/", store=store)
            def list(self):
                pass

        meta = controller_metadata(Things, store)
        self.assertIsNone(meta.base_path)
        self.assertEqual(len(meta.routes), 1)


class InheritanceTest(unittest.TestCase):
    def setUp(self):
        store = self.store = MetadataStore()

        @guard(mw_a, store=store)
        class Base:
            @get("/", store=store)
            def list(self):
                pass

            @get("/{item_id}", store=store)
            def one(self, item_id):
                pass

        @controller("/items", store=store)
        @guard(mw_b, store=store)
        class Items(Base):
            @post("/{item_id}/lookup", store=store)
            def one(self, item_id):
                pass

            @post("/bulk", store=store)
            def bulk(self):
                pass

        self.Base, self.Items = Base, Items

    def test_routes_are_aggregated_base_first(self):
        meta = controller_metadata(self.Items, self.store)
        self.assertEqual(
            [(r.verb, r.path, r.handler_name) for r in meta.routes],
            [("GET", "/", "list"), ("POST", "/{item_id}/lookup", "one"), ("POST", "/bulk", "bulk")],
        )

    def test_class_middlewares_are_inherited_base_first(self):
        self.assertEqual(controller_metadata(self.Items, self.store).middlewares, [mw_a, mw_b])

    def test_subclass_inherits_base_path(self):
        class Special(self.Items):
            pass

        self.assertEqual(controller_metadata(Special, self.store).base_path, "/items")
