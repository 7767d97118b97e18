"""Bindable classes shared by the test suites, registered with their own registry."""

from enum import Enum
from pathlib import PurePosixPath
from typing import Annotated, Optional, Union
from uuid import UUID

from structs.custom import CustomDescribableModel
from structs.decorators import data_bound_constructor, data_bound_setter
from structs.domain import DATA_BOUND, Secret
from structs.parameters import ParameterDefinition, ParameterValue
from structs.registry import ExtensionRegistry

registry = ExtensionRegistry()


class Greeting:
    def __init__(self, text: str, flag: bool):
        self.text = text
        self.flag = flag


class Base:
    pass


@registry.extension()
class Impl1(Base):
    def __init__(self, text: str):
        self.text = text


@registry.extension(display_name="Second implementation")
class Impl2(Base):
    def __init__(self):
        self.flag = False

    @data_bound_setter
    def set_flag(self, flag: bool):
        self.flag = flag


class UsesBase:
    def __init__(self, base: Base):
        self.base = base


class UsesImpl2:
    def __init__(self, impl2: Impl2):
        self.impl2 = impl2


class Tech:
    pass


@registry.extension(symbols="net", display_name="Internet")
class Internet(Tech):
    pass


@registry.extension(symbols=["rod", "pole"])
class FishingRod(Tech):
    def __init__(self, length: int = 3):
        self.length = length


class Toolbox:
    def __init__(self, tools: list[Tech]):
        self.tools = tools


class Node:
    def __init__(self, label: str, children: Optional[list["Node"]] = None):
        self.label = label
        self.children = children


class Expression:
    pass


@registry.extension()
class Number(Expression):
    def __init__(self, value: int):
        self.value = value


@registry.extension()
class Negate(Expression):
    def __init__(self, operand: Expression):
        self.operand = operand


class Color(Enum):
    RED = 1
    GREEN = 2


@registry.constants(RED="crimson")
class ColorAliases:
    RED = Color.RED


class Palette:
    def __init__(self, primary: Color):
        self.primary = primary
        self.others: list[Color] = []

    @data_bound_setter
    def set_others(self, others: list[Color]):
        self.others = others


class Weight:
    def __init__(self, kilograms: float):
        self.kilograms = kilograms

    def __eq__(self, other):
        return isinstance(other, Weight) and other.kilograms == self.kilograms

    def __hash__(self):
        return hash(self.kilograms)


@registry.constants(LIGHT="light", HEAVY="heavy")
class Weights:
    LIGHT = Weight(1.0)
    HEAVY = Weight(100.0)


class Parcel:
    def __init__(self, weight: Weight):
        self.weight = weight


class Location:
    def __init__(self, path: PurePosixPath, id: Optional[UUID] = None):
        self.path = path
        self.id = id


class Credentials:
    def __init__(self, user: str, password: Secret):
        self.user = user
        self.password = password
        self.port = 22

    @data_bound_setter
    def set_port(self, port: int):
        self.port = port


class Window:
    def __init__(self, width: int):
        if width <= 0:
            raise ValueError("width must be positive")
        self.width = width
        self.title = "untitled"

    @data_bound_setter
    def set_title(self, title: str):
        self.title = title


class Renamed:
    def __init__(self):
        self.new_name = "default"

    @data_bound_setter
    def set_new_name(self, new_name: str):
        self.new_name = new_name

    @data_bound_setter(deprecated=True)
    def set_old_name(self, old_name: str):
        self.new_name = old_name

    def get_old_name(self) -> str:
        return self.new_name


class Point:
    def __init__(self, coordinates: tuple[int, ...]):
        self.coordinates = coordinates

    @classmethod
    @data_bound_constructor
    def of(cls, x: int, y: int) -> "Point":
        return cls((x, y))

    @property
    def x(self) -> int:
        return self.coordinates[0]

    @property
    def y(self) -> int:
        return self.coordinates[1]


class Widget:
    label: Annotated[Optional[str], DATA_BOUND] = None

    def __init__(self, size: int):
        self.size = size


class Environment:
    def __init__(self, variables: dict[str, int], tags: frozenset[str] = frozenset()):
        self.variables = variables
        self.tags = tags


class Measurement:
    def __init__(self, ratio: float):
        self.ratio = ratio


class Ambivalent:
    def __init__(self, value: Union[int, str]):
        self.value = value


class Animal:
    pass


@registry.extension()
class Cat(Animal):
    pass


class First:
    @registry.extension()
    class SharedName(Animal):
        pass


class Second:
    @registry.extension()
    class SharedName(Animal):
        pass


class Holder:
    def __init__(self, animal: Animal):
        self.animal = animal


class LabelRenames(CustomDescribableModel):
    """Accepts ``label`` for ``text`` and writes ``label`` back out."""

    def __init__(self):
        self.seen = []

    def custom_instantiate(self, arguments):
        self.seen.append(arguments)
        if "label" in arguments:
            arguments = dict(arguments)
            arguments["text"] = arguments.pop("label")
        return arguments

    def custom_uninstantiate(self, ud):
        arguments = dict(ud.arguments)
        arguments["label"] = arguments.pop("text")
        return ud.with_arguments(arguments)


label_renames = LabelRenames()


@registry.extension(customizer=label_renames)
class Labelled:
    def __init__(self, text: str):
        self.text = text


@registry.extension(symbols="booleanParam")
class BooleanParameterDefinition(ParameterDefinition):
    def __init__(self, name: str, default_value: bool = False):
        super().__init__(name)
        self.default_value = default_value


class BooleanParameterValue(ParameterValue):
    def __init__(self, name: str, value: bool):
        super().__init__(name)
        self.value = value


@registry.extension(symbols="string")
class StringParameterDefinition(ParameterDefinition):
    pass


class StringParameterValue(ParameterValue):
    def __init__(self, name: str, value: str):
        super().__init__(name)
        self.value = value


class TakesParams:
    def __init__(self, parameters: list[ParameterValue]):
        self.parameters = parameters
