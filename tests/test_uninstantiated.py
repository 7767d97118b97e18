import pickle

import pytest

from describables import (
    Base,
    Color,
    Greeting,
    Impl1,
    Internet,
    Tech,
    UsesBase,
    Window,
    registry,
)
from structs.binder import Binder, set_binder
from structs.config import Settings
from structs.errors import ArgumentError
from structs.uninstantiated import UninstantiatedConstant, UninstantiatedDescribable


@pytest.fixture
def binder():
    return Binder(registry, Settings())


@pytest.fixture
def process_binder(binder):
    set_binder(binder)
    yield binder
    set_binder(None)


def test_to_map_adds_class_keys_recursively(binder):
    ud = binder.uninstantiate(UsesBase(Impl1("hi")))

    assert ud.to_map() == {"base": {"$class": "Impl1", "text": "hi"}}


def test_to_shallow_map_leaves_nested_objects(binder):
    ud = binder.uninstantiate(UsesBase(Impl1("hi")))

    nested = ud.to_shallow_map()["base"]
    assert isinstance(nested, UninstantiatedDescribable)
    assert nested.klass == "Impl1"


def test_to_shallow_map_is_sorted():
    ud = UninstantiatedDescribable(klass="Thing", arguments={"b": 1, "a": 2})

    assert list(ud.to_shallow_map()) == ["$class", "a", "b"]


def test_arguments_are_read_only():
    ud = UninstantiatedDescribable(arguments={"a": 1})

    with pytest.raises(TypeError):
        ud.arguments["a"] = 2


def test_with_arguments_keeps_tags_and_model(binder):
    ud = binder.uninstantiate(Impl1("hi"))
    ud.klass = "Impl1"

    changed = ud.with_arguments({"text": "bye"})

    assert changed.klass == "Impl1"
    assert changed.model is ud.model
    assert changed.arguments == {"text": "bye"}
    assert ud.arguments == {"text": "hi"}


def test_sole_required_argument(binder):
    assert binder.uninstantiate(Impl1("hi")).has_sole_required_argument()
    assert binder.uninstantiate(Window(3)).has_sole_required_argument()
    assert not binder.uninstantiate(Greeting("hi", True)).has_sole_required_argument()


def test_sole_required_argument_needs_a_model():
    assert not UninstantiatedDescribable(arguments={"text": "hi"}).has_sole_required_argument()


def test_string_form():
    assert str(UninstantiatedDescribable("net", "Internet")) == "@net$Internet()"
    assert str(UninstantiatedDescribable(arguments={"a": 1, "b": "x"})) == "(a=1,b=x)"


def test_equality_is_structural(binder):
    a = binder.uninstantiate(Greeting("hi", True))
    b = UninstantiatedDescribable(arguments={"flag": True, "text": "hi"})

    assert a == b
    assert hash(a) == hash(b)
    assert a != UninstantiatedDescribable(klass="Greeting", arguments={"flag": True, "text": "hi"})


def test_instantiate_by_class_name(binder):
    ud = UninstantiatedDescribable(klass="Impl1", arguments={"text": "x"})

    impl = ud.instantiate(Base, binder=binder)

    assert isinstance(impl, Impl1)
    assert impl.text == "x"


def test_instantiate_by_symbol(binder):
    assert isinstance(UninstantiatedDescribable("net").instantiate(Tech, binder=binder), Internet)


def test_instantiate_defaults_to_model_type(binder):
    ud = binder.uninstantiate(Greeting("hi", True))

    greeting = ud.instantiate()

    assert isinstance(greeting, Greeting)
    assert greeting.flag is True


def test_instantiate_falls_back_to_process_binder(process_binder):
    ud = UninstantiatedDescribable(klass="Impl1", arguments={"text": "x"})

    assert isinstance(ud.instantiate(Base), Impl1)


def test_from_object(binder):
    ud = UninstantiatedDescribable.from_object(Impl1("hi"), binder)

    assert ud.arguments == {"text": "hi"}
    assert ud.model is binder.model_of(Impl1)


def test_pickle_rebinds_model(process_binder):
    ud = process_binder.uninstantiate(UsesBase(Impl1("hi")))

    restored = pickle.loads(pickle.dumps(ud))

    assert restored == ud
    assert restored.model is process_binder.model_of(UsesBase)
    assert restored.arguments["base"].model is process_binder.model_of(Impl1)
    assert restored.instantiate().base.text == "hi"


def test_pickle_model(process_binder):
    model = process_binder.model_of(Greeting)

    assert pickle.loads(pickle.dumps(model)) is model


def test_constant_falls_back_to_enum_member(binder):
    assert UninstantiatedConstant("GREEN").instantiate(Color, binder.symbols) is Color.GREEN


def test_constant_symbol_wins_over_enum_member(binder):
    assert UninstantiatedConstant("crimson").instantiate(Color, binder.symbols) is Color.RED


def test_unknown_constant(binder):
    with pytest.raises(ArgumentError, match="No such property: BLUE"):
        UninstantiatedConstant("BLUE").instantiate(Color, binder.symbols)


def test_untagged_object_instantiates_the_class_it_was_taken_from(binder):
    uses = binder.instantiate(UsesBase, {"base": binder.uninstantiate(Impl1("x"))})

    assert isinstance(uses.base, Impl1)
    assert uses.base.text == "x"


def test_untagged_object_must_fit_the_expected_type(binder):
    ud = binder.uninstantiate(Greeting("hi", True))

    with pytest.raises(ArgumentError, match="describables.Greeting is not an implementation of describables.Base"):
        ud.instantiate(Base, binder=binder)
