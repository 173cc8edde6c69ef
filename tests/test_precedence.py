import unittest
from pathlib import Path

from litefold import Container


APP = Path(__file__).parent / "fixtures" / "app"


class TestResolutionPrecedence(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()

    def test_binding_wins_over_autoloaded_file(self):
        self.cont.autoload("App", APP)
        self.cont.bind("App/Http/routes", lambda: "bound")
        assert self.cont.use("App/Http/routes") == "bound"

    def test_binding_wins_over_installed_package(self):
        self.cont.bind("json", lambda: "not the stdlib")
        assert self.cont.use("json") == "not the stdlib"

    def test_alias_wins_over_binding_with_same_name(self):
        self.cont.bind("Foo", lambda: "direct")
        self.cont.bind("App/Foo", lambda: "aliased")
        self.cont.alias("Foo", "App/Foo")
        assert self.cont.use("Foo") == "aliased"

    def test_aliases_from_mapping(self):
        class Foo: ...

        self.cont.bind("App/Foo", lambda: Foo())
        self.cont.aliases({"Foo": "App/Foo", "Bar": "App/Bar"})

        assert isinstance(self.cont.use("Foo"), Foo)
        assert self.cont.get_aliases() == {"Foo": "App/Foo", "Bar": "App/Bar"}

    def test_alias_resolves_a_single_hop(self):
        self.cont.bind("App/Foo", lambda: "foo")
        self.cont.bind("Middle", lambda: "middle")
        self.cont.alias("Middle", "App/Foo")
        self.cont.alias("Outer", "Middle")
        # Outer -> Middle only; Middle is then looked up as a namespace
        assert self.cont.use("Outer") == "middle"

    def test_alias_can_point_to_autoloaded_path(self):
        self.cont.autoload("App", APP)
        self.cont.alias("Routes", "App/Http/routes")
        assert self.cont.use("Routes") == "routes"

    def test_longest_autoload_prefix_wins(self):
        self.cont.autoload("App", APP)
        self.cont.autoload("App/Http", APP / "Services")
        assert self.cont.use("App/Http/Clock").zone == "UTC"

    def test_make_prefers_override_over_registration(self):
        class Repo:
            def __init__(self, db):
                self.db = db

        self.cont.bind("db", lambda: "registered")
        obj = self.cont.make(Repo, db="override")
        assert obj.db == "override"

    def test_make_prefers_registration_over_default_value(self):
        class WithDefault:
            def __init__(self, port=5555):
                self.port = port

        self.cont.bind("port", lambda: 1234)
        obj = self.cont.make(WithDefault)
        assert obj.port == 1234

    def test_make_uses_default_when_not_registered(self):
        class WithDefault:
            def __init__(self, port=5555):
                self.port = port

        obj = self.cont.make(WithDefault)
        assert obj.port == 5555
