import pytest

from litefold import Binding, Container, InvalidArgument, ModuleNotFound


def test_bind_namespace_to_closure():
    c = Container()
    c.bind("App/Foo", lambda: "bar")

    binding = c.get_providers()["App/Foo"]
    assert isinstance(binding, Binding)
    assert callable(binding.closure)
    assert binding.closure() == "bar"
    assert binding.singleton is False


def test_bind_without_callable_raises():
    c = Container()
    with pytest.raises(InvalidArgument, match="Invalid arguments"):
        c.bind("App/Foo", "bar")


def test_use_returns_factory_result_without_container_argument():
    c = Container()
    c.bind("App/Foo", lambda: "bar")
    assert c.use("App/Foo") == "bar"


def test_factory_can_receive_container():
    c = Container()

    def make_foo(app):
        assert app is c  # ensure same container arrives
        return "foo"

    c.bind("App/Foo", make_foo)
    assert c.use("App/Foo") == "foo"


def test_factory_can_use_other_dependencies():
    c = Container()
    c.bind("App/Bar", lambda: "bar")
    c.bind("App/Foo", lambda app: app.use("App/Bar"))
    assert c.use("App/Foo") == "bar"


def test_use_returns_bound_class_as_is():
    c = Container()

    class Foo: ...

    c.bind("App/Foo", lambda: Foo)
    assert c.use("App/Foo") is Foo


def test_class_can_be_bound_as_factory():
    c = Container()

    class Foo: ...

    c.bind("App/Foo", Foo)
    assert isinstance(c.use("App/Foo"), Foo)


def test_factory_building_object_graph_with_use():
    c = Container()

    class Bar: ...

    class Foo:
        def __init__(self, App_Bar):
            self.bar = App_Bar

    c.bind("App/Bar", lambda: Bar())
    c.bind("App/Foo", lambda app: Foo(app.use("App/Bar")))

    foo = c.use("App/Foo")
    assert isinstance(foo.bar, Bar)


def test_bind_is_transient():
    c = Container()

    class Foo: ...

    c.bind("App/Foo", lambda: Foo())
    assert c.use("App/Foo") is not c.use("App/Foo")


def test_later_bind_overwrites_earlier_one():
    c = Container()
    c.bind("App/Foo", lambda: "first")
    c.bind("App/Foo", lambda: "second")
    assert c.use("App/Foo") == "second"


def test_unresolvable_namespace_raises_module_not_found():
    c = Container()
    with pytest.raises(ModuleNotFound, match="Cannot find module"):
        c.use("Bar")


def test_module_not_found_is_an_import_error():
    c = Container()
    with pytest.raises(ImportError):
        c.use("App/Missing")


def test_use_falls_back_to_installed_packages():
    c = Container()
    json = c.use("json")
    assert callable(json.dumps)


def test_use_requires_non_empty_string():
    c = Container()
    with pytest.raises(InvalidArgument):
        c.use("")


def test_introspection_returns_snapshots():
    c = Container()
    c.bind("App/Foo", lambda: "foo")

    providers = c.get_providers()
    providers.pop("App/Foo")

    assert "App/Foo" in c.get_providers()


def test_max_depth_must_be_positive():
    with pytest.raises(InvalidArgument):
        Container(max_depth=0)
