from pathlib import PurePosixPath
from types import MappingProxyType

import pytest

from describables import (
    Color,
    Credentials,
    Environment,
    First,
    FishingRod,
    Greeting,
    Holder,
    Impl1,
    Impl2,
    Internet,
    Labelled,
    Location,
    Node,
    Palette,
    Point,
    Renamed,
    Toolbox,
    UsesBase,
    UsesImpl2,
    Window,
    label_renames,
    registry,
)
from structs.binder import Binder
from structs.config import Settings
from structs.domain import Secret
from structs.errors import UnsupportedOperationError


@pytest.fixture
def binder():
    return Binder(registry, Settings())


@pytest.mark.parametrize(
    "cls,arguments",
    [
        (Greeting, {"text": "hello", "flag": True}),
        (UsesBase, {"base": {"$class": "Impl2", "flag": True}}),
        (UsesImpl2, {"impl2": {"flag": True}}),
        (Toolbox, {"tools": [{"$class": "Internet"}, {"$class": "FishingRod", "length": 5}]}),
        (Palette, {"primary": "GREEN", "others": ["RED"]}),
        (Environment, {"variables": {"a": 1}, "tags": ["x"]}),
        (Node, {"label": "root", "children": [{"label": "leaf"}]}),
        (Window, {"width": 3, "title": "wide"}),
    ],
)
def test_round_trip(binder, cls, arguments):
    instance = binder.instantiate(cls, arguments)

    assert binder.uninstantiate(instance).to_map() == arguments


def test_required_parameter_at_zero_value_is_omitted(binder):
    greeting = binder.instantiate(Greeting, {"text": "goodbye"})

    assert binder.uninstantiate(greeting).to_map() == {"text": "goodbye"}


def test_required_parameter_at_default_is_omitted(binder):
    assert binder.uninstantiate(FishingRod()).to_map() == {}
    assert binder.uninstantiate(FishingRod(4)).to_map() == {"length": 4}


def test_optional_parameters_at_default_are_omitted(binder):
    assert binder.uninstantiate(Impl2()).to_map() == {}
    assert binder.uninstantiate(Window(3)).to_map() == {"width": 3}


def test_customized_optional_parameter_is_kept(binder):
    impl2 = Impl2()
    impl2.set_flag(True)

    assert binder.uninstantiate(impl2).to_map() == {"flag": True}


def test_nested_implementation_is_named_by_simple_name(binder):
    ud = binder.uninstantiate(UsesBase(Impl1("hi")))

    assert ud.to_map() == {"base": {"$class": "Impl1", "text": "hi"}}
    assert isinstance(binder.instantiate(UsesBase, ud.to_map()).base, Impl1)


def test_nested_implementation_with_ambiguous_name_is_named_by_qualified_name(binder):
    ud = binder.uninstantiate(Holder(First.SharedName()))

    assert ud.to_map() == {"animal": {"$class": "describables.First.SharedName"}}
    assert isinstance(binder.instantiate(Holder, ud.to_map()).animal, First.SharedName)


def test_symbol_is_recorded(binder):
    ud = binder.uninstantiate(Toolbox([Internet(), FishingRod()]))

    internet, rod = ud.arguments["tools"]
    assert internet.symbol == "net"
    assert rod.symbol == "rod"
    assert ud.to_map() == {"tools": [{"$class": "Internet"}, {"$class": "FishingRod"}]}


def test_enums_and_string_backed_values_become_strings(binder):
    palette = Palette(Color.RED)
    palette.set_others([Color.GREEN])

    assert binder.uninstantiate(palette).to_map() == {"others": ["GREEN"], "primary": "RED"}
    assert binder.uninstantiate(Location(PurePosixPath("/tmp/x"))).to_map() == {"path": "/tmp/x"}


def test_designated_constructor_round_trip(binder):
    assert binder.uninstantiate(Point.of(1, 2)).to_map() == {"x": 1, "y": 2}


def test_deprecated_alias_at_default_is_omitted(binder):
    assert binder.uninstantiate(Renamed()).to_map() == {}


def test_deprecated_alias_following_its_successor_is_omitted(binder):
    renamed = Renamed()
    renamed.set_new_name("custom")

    assert binder.uninstantiate(renamed).to_map() == {"new_name": "custom"}


def test_deprecated_alias_set_through_old_name_is_omitted(binder):
    renamed = binder.instantiate(Renamed, {"old_name": "legacy"})

    assert binder.uninstantiate(renamed).to_map() == {"new_name": "legacy"}


def test_control_object_failure_keeps_all_properties(binder, caplog):
    window = Window(5)
    window.width = 0

    ud = binder.uninstantiate(window)

    assert ud.to_map() == {"title": "untitled"}
    assert "Cannot create control version of describables.Window" in caplog.text


def test_secrets_are_kept_but_never_rendered(binder):
    ud = binder.uninstantiate(Credentials("u", Secret("hunter2")))

    assert ud.arguments["password"] == Secret("hunter2")
    assert str(ud) == "(password=Secret(******),user=u)"


def test_secrets_are_redacted_from_control_object_warnings(binder, caplog):
    class Vault:
        def __init__(self, key: Secret, size: int):
            if size <= 0:
                raise ValueError(f"size must be positive for {key.get_plain_text()}")
            self.key = key
            self.size = size

    vault = Vault(Secret("s3cr3t"), 1)
    vault.size = 0

    binder.uninstantiate(vault)

    assert "Cannot create control version" in caplog.text
    assert "s3cr3t" not in caplog.text


def test_nested_value_that_cannot_be_uninstantiated_is_kept_raw(binder, caplog):
    class Opaque:
        def __init__(self, sauce: str):
            pass

    class Wrapper:
        def __init__(self, payload: object):
            self.payload = payload

    opaque = Opaque("x")

    ud = binder.uninstantiate(Wrapper(opaque))

    assert ud.arguments["payload"] is opaque
    assert "Failed to uncoerce" in caplog.text
    assert "Opaque for payload" in caplog.text


def test_uninstantiate_rejects_none(binder):
    with pytest.raises(UnsupportedOperationError, match="but got None"):
        binder.model_of(Greeting).uninstantiate(None)


def test_uninstantiate_rejects_other_types(binder):
    with pytest.raises(UnsupportedOperationError, match="but got an instance of describables.Impl1"):
        binder.model_of(Greeting).uninstantiate(Impl1("x"))


def test_uninstantiate_requires_readable_properties(binder):
    class WriteOnly:
        def __init__(self, hidden: str):
            pass

    with pytest.raises(UnsupportedOperationError, match="no attribute 'hidden'"):
        binder.uninstantiate(WriteOnly("x"))


def test_customizer_rewrites_both_directions(binder):
    ud = binder.uninstantiate(Labelled("hi"))

    assert ud.to_map() == {"label": "hi"}
    assert binder.instantiate(Labelled, {"label": "hi"}).text == "hi"


def test_customizer_receives_immutable_arguments(binder):
    binder.instantiate(Labelled, {"label": "x", "nested": {"a": [1]}})

    given = label_renames.seen[-1]
    assert isinstance(given, MappingProxyType)
    assert given["nested"]["a"] == (1,)
    with pytest.raises(TypeError):
        given["text"] = "y"


def test_enum_map_keys_become_names(binder):
    class ByColor:
        def __init__(self, weights: dict[Color, int]):
            self.weights = weights

    by_color = binder.instantiate(ByColor, {"weights": {"RED": 1}})

    assert by_color.weights == {Color.RED: 1}
    assert binder.uninstantiate(by_color).to_map() == {"weights": {"RED": 1}}
