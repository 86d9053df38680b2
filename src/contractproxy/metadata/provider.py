from __future__ import annotations

import collections.abc
import dataclasses
import inspect
import types
import typing
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator, Optional, Protocol
from uuid import UUID

from pydantic import BaseModel

from contractproxy.contracts.files import FormFile

_SIMPLE_TYPES: tuple[type, ...] = (
    str,
    int,
    float,
    bool,
    Decimal,
    UUID,
    datetime,
    date,
    time,
    timedelta,
)

_COLLECTION_ORIGINS = {
    list,
    tuple,
    set,
    frozenset,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
    collections.abc.Collection,
    collections.abc.Iterable,
}

_MAPPING_ORIGINS = {
    dict,
    collections.abc.Mapping,
    collections.abc.MutableMapping,
}

_NONE_TYPE = type(None)


@dataclass(frozen=True)
class ParameterInfo:
    """One declared parameter of a contract operation, annotations resolved."""

    name: str
    annotation: Any = Any
    markers: tuple[Any, ...] = ()  # Annotated[...] extras


@dataclass(frozen=True)
class ModelMetadata:
    property_name: str
    model_type: Any
    is_simple_type: bool = False
    is_form_file: bool = False
    is_complex_type: bool = False
    is_collection: bool = False
    is_nullable: bool = False
    element_type: Any = None

    @property
    def type_name(self) -> str:
        return _type_name(self.model_type)


class ModelMetadataProvider(Protocol):
    def get_metadata_for_parameter(self, parameter: ParameterInfo) -> ModelMetadata: ...

    def to_flat(self, metadata: ModelMetadata) -> Iterator[ModelMetadata]: ...


def _type_name(tp: Any) -> str:
    if isinstance(tp, type):
        return tp.__name__
    return str(tp).replace("typing.", "")


def _strip_annotated(tp: Any) -> Any:
    while typing.get_origin(tp) is typing.Annotated:
        tp = typing.get_args(tp)[0]
    return tp


def _unwrap(tp: Any) -> tuple[Any, bool]:
    """Return (core type, nullable) with Annotated/Optional/NewType removed."""
    nullable = False
    while True:
        tp = _strip_annotated(tp)
        supertype = getattr(tp, "__supertype__", None)
        if supertype is not None:
            tp = supertype
            continue
        args = typing.get_args(tp)
        if _is_union(tp) and _NONE_TYPE in args:
            rest = [a for a in args if a is not _NONE_TYPE]
            nullable = True
            if len(rest) == 1:
                tp = rest[0]
                continue
        return tp, nullable


def _is_union(tp: Any) -> bool:
    origin = typing.get_origin(tp)
    return origin is typing.Union or origin is types.UnionType


def _is_class(tp: Any) -> bool:
    # list[int] is an instance of type on 3.10 but rejected by issubclass
    return isinstance(tp, type) and typing.get_origin(tp) is None


def _is_simple(tp: Any) -> bool:
    if typing.get_origin(tp) is typing.Literal:
        return all(isinstance(v, (str, int, bool)) for v in typing.get_args(tp))
    return _is_class(tp) and (issubclass(tp, _SIMPLE_TYPES) or issubclass(tp, Enum))


def _is_form_file(tp: Any) -> bool:
    return _is_class(tp) and issubclass(tp, FormFile)


def _collection_element(tp: Any) -> Optional[Any]:
    origin = typing.get_origin(tp)
    if origin is None:
        if tp in (list, tuple, set, frozenset):
            return Any
        return None
    args = [a for a in typing.get_args(tp) if a is not Ellipsis]
    if origin in _MAPPING_ORIGINS:
        # values are sent, keys only name them
        return args[1] if len(args) == 2 else Any
    if origin not in _COLLECTION_ORIGINS:
        return None
    if not args:
        return Any
    if origin is tuple:
        # tuple[str, FormFile]: any file member makes the whole tuple an upload
        for arg in args:
            if _is_form_file(_unwrap(arg)[0]):
                return arg
    return args[0]


def _is_complex(tp: Any) -> bool:
    if not _is_class(tp) or _is_simple(tp) or _is_form_file(tp):
        return False
    if tp in (bytes, bytearray, dict, object, Any):
        return False
    if issubclass(tp, BaseModel) or dataclasses.is_dataclass(tp):
        return True
    return bool(getattr(tp, "__annotations__", None)) and not issubclass(tp, Enum)


class DefaultModelMetadataProvider:
    """
    Type-hint based metadata provider.

    Simple types bind into URL segments; FormFile (or a collection of it)
    marks a file upload; pydantic models, dataclasses and annotated classes
    are composites whose properties can be flattened.
    """

    def get_metadata_for_parameter(self, parameter: ParameterInfo) -> ModelMetadata:
        return self.get_metadata_for_type(parameter.annotation, parameter.name)

    def get_metadata_for_type(self, model_type: Any, property_name: str) -> ModelMetadata:
        if model_type is inspect.Parameter.empty:
            model_type = Any

        core, nullable = _unwrap(model_type)
        element = _collection_element(core)

        if element is not None:
            element_core, _ = _unwrap(element)
            return ModelMetadata(
                property_name=property_name,
                model_type=core,
                is_form_file=_is_form_file(element_core),
                is_complex_type=_is_complex(element_core),
                is_collection=True,
                is_nullable=nullable,
                element_type=element_core,
            )

        return ModelMetadata(
            property_name=property_name,
            model_type=core,
            is_simple_type=_is_simple(core),
            is_form_file=_is_form_file(core),
            is_complex_type=_is_complex(core),
            is_nullable=nullable,
        )

    def get_properties(self, metadata: ModelMetadata) -> tuple[ModelMetadata, ...]:
        if not metadata.is_complex_type:
            return ()
        owner = metadata.element_type if metadata.is_collection else metadata.model_type
        return tuple(
            self.get_metadata_for_type(tp, name) for name, tp in _declared_properties(owner)
        )

    def to_flat(self, metadata: ModelMetadata) -> Iterator[ModelMetadata]:
        """
        Depth-first walk of nested properties in declaration order.
        Each composite type is expanded once per walk, so recursive models terminate.
        """
        expanded = {_expansion_key(metadata)}

        def walk(meta: ModelMetadata) -> Iterator[ModelMetadata]:
            for prop in self.get_properties(meta):
                yield prop
                if not prop.is_complex_type:
                    continue
                key = _expansion_key(prop)
                if key in expanded:
                    continue
                expanded.add(key)
                yield from walk(prop)

        return walk(metadata)


def _expansion_key(metadata: ModelMetadata) -> Any:
    return metadata.element_type if metadata.is_collection else metadata.model_type


def _declared_properties(owner: type) -> list[tuple[str, Any]]:
    if issubclass(owner, BaseModel):
        return [(name, field.annotation) for name, field in owner.model_fields.items()]

    hints = typing.get_type_hints(owner, include_extras=True)
    if dataclasses.is_dataclass(owner):
        return [(f.name, hints.get(f.name, f.type)) for f in dataclasses.fields(owner)]

    return [
        (name, tp)
        for name, tp in hints.items()
        if typing.get_origin(tp) is not typing.ClassVar and tp is not typing.ClassVar
    ]
