from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional
from uuid import UUID

from pydantic import BaseModel

from contractproxy.contracts.annotations import FromBody
from contractproxy.contracts.files import FormFile
from contractproxy.metadata.provider import DefaultModelMetadataProvider, ParameterInfo


class Color(Enum):
    RED = "red"
    BLUE = "blue"


class SampleModel(BaseModel):
    name: str
    value: Optional[str] = None


@dataclass
class Inner:
    doc: FormFile
    label: str


@dataclass
class Outer:
    inner: Inner
    tags: list[str]


@dataclass
class Node:
    name: str
    children: List["Node"]


class Plain:
    title: str
    count: int


provider = DefaultModelMetadataProvider()


def meta(tp, name="p"):
    return provider.get_metadata_for_type(tp, name)


def test_simple_types_are_simple():
    for tp in (int, str, float, bool, UUID, Color, Literal["a", "b"]):
        m = meta(tp)
        assert m.is_simple_type, tp
        assert not m.is_form_file
        assert not m.is_complex_type


def test_optional_and_annotated_are_unwrapped():
    m = meta(Optional[int])
    assert m.is_simple_type
    assert m.is_nullable
    assert m.model_type is int

    m = meta(Annotated[int, FromBody])
    assert m.is_simple_type
    assert m.model_type is int


def test_form_file_and_collections_of_form_files():
    assert meta(FormFile).is_form_file

    m = meta(list[FormFile], "files")
    assert m.is_form_file
    assert m.is_collection
    assert m.element_type is FormFile
    assert m.property_name == "files"


def test_composites_are_complex_not_simple():
    for tp in (SampleModel, Outer, Plain):
        m = meta(tp)
        assert m.is_complex_type, tp
        assert not m.is_simple_type


def test_unknown_or_missing_annotation_is_opaque():
    m = meta(Any)
    assert not m.is_simple_type
    assert not m.is_complex_type
    assert list(provider.to_flat(m)) == []

    m = provider.get_metadata_for_parameter(ParameterInfo(name="x"))
    assert m.property_name == "x"
    assert not m.is_simple_type


def test_get_properties_of_model_dataclass_and_plain_class():
    assert [p.property_name for p in provider.get_properties(meta(SampleModel))] == ["name", "value"]
    assert [p.property_name for p in provider.get_properties(meta(Outer))] == ["inner", "tags"]
    assert [p.property_name for p in provider.get_properties(meta(Plain))] == ["title", "count"]


def test_collection_of_models_exposes_model_properties():
    m = meta(list[SampleModel])
    assert m.is_collection
    assert m.is_complex_type
    assert [p.property_name for p in provider.get_properties(m)] == ["name", "value"]


def test_to_flat_walks_nested_properties_depth_first():
    flat = list(provider.to_flat(meta(Outer)))

    assert [p.property_name for p in flat] == ["inner", "doc", "label", "tags"]
    assert any(p.is_form_file for p in flat)


def test_to_flat_terminates_on_recursive_models_and_is_restartable():
    m = meta(Node)
    first = [p.property_name for p in provider.to_flat(m)]
    second = [p.property_name for p in provider.to_flat(m)]

    assert first == ["name", "children"]
    assert first == second


def test_parameter_metadata_uses_parameter_name():
    m = provider.get_metadata_for_parameter(ParameterInfo(name="model", annotation=SampleModel))
    assert m.property_name == "model"
    assert m.type_name == "SampleModel"


def test_mapping_values_and_tuple_members_are_inspected_for_files():
    m = meta(Dict[str, FormFile], "files")
    assert m.is_form_file
    assert m.is_collection
    assert m.element_type is FormFile

    assert meta(Mapping[str, Optional[FormFile]]).is_form_file
    assert meta(tuple[str, FormFile]).is_form_file
    assert not meta(dict[str, int]).is_form_file
    assert not meta(tuple[int, ...]).is_form_file

    m = meta(dict[str, SampleModel])
    assert [p.property_name for p in provider.get_properties(m)] == ["name", "value"]
