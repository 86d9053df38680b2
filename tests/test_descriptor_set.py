import dataclasses
import json

import pytest

from contractproxy.compiler.compiler import compile_contracts
from contractproxy.compiler.descriptors import ProxyDescriptor, ProxyMethodDescriptor
from contractproxy.contracts.annotations import ApiContract, api_route, http_get, http_headers


class ReadOps(ApiContract):
    @http_get("{id}")
    def get(self, id: int): ...


class LegacyOps(ApiContract):
    @http_get("legacy/{id}")
    def get(self, id: int): ...


@api_route(region_key="catalog", route_template="v1")
class ProductsApi(ReadOps, LegacyOps):
    @http_headers("X-Client: tests")
    @http_get("count")
    def count(self) -> int: ...


@api_route(region_key="billing")
class InvoicesApi(ApiContract):
    def listing(self): ...


def test_descriptor_set_is_a_read_only_mapping_in_input_order():
    ds = compile_contracts([InvoicesApi, ProductsApi, InvoicesApi])

    assert list(ds) == [InvoicesApi, ProductsApi]
    assert len(ds) == 2
    assert ds.operation_count == 4
    assert ProductsApi in ds

    with pytest.raises(TypeError):
        ds[ProductsApi] = None


def test_published_descriptors_are_immutable():
    ds = compile_contracts([ProductsApi])
    d = ds.descriptor_for(ProductsApi)
    m = ds.method(ProductsApi, "count")

    with pytest.raises(dataclasses.FrozenInstanceError):
        m.http_method = "POST"
    with pytest.raises(dataclasses.FrozenInstanceError):
        d.route = "other"
    with pytest.raises(TypeError):
        m.headers["X-Other"] = "1"
    with pytest.raises(TypeError):
        d.methods[ProductsApi.count] = m


def test_lookup_by_function_and_ambiguous_names():
    ds = compile_contracts([ProductsApi])

    assert ds.method(ProductsApi, ReadOps.get).method_marker_template == "{id}"
    assert ds.method(ProductsApi, LegacyOps.get).method_marker_template == "legacy/{id}"
    assert len(ds[ProductsApi].find("get")) == 2

    with pytest.raises(LookupError):
        ds.method(ProductsApi, "get")
    with pytest.raises(LookupError):
        ds.method(ProductsApi, "missing")
    with pytest.raises(LookupError):
        ds.method(ProductsApi, InvoicesApi.listing)
    with pytest.raises(LookupError):
        ds.descriptor_for(InvoicesApi)


def test_to_dict_is_json_ready():
    ds = compile_contracts([ProductsApi])
    payload = json.loads(json.dumps(ds.to_dict()))

    assert payload["operation_count"] == 3
    contract = payload["contracts"][0]
    assert contract["region_key"] == "catalog"
    assert contract["route"] == "v1/Products"

    count = [m for m in contract["methods"] if m["name"] == "count"][0]
    assert count["http_method"] == "GET"
    assert count["headers"] == {"X-Client": "tests"}
    assert count["template_keys"] == ["count"]
    assert count["timeout"] is None


def test_descriptor_defaults_are_empty_read_only_mappings():
    m = ProxyMethodDescriptor(method=InvoicesApi.listing, name="listing", declaring_type=InvoicesApi)
    d = ProxyDescriptor(contract=InvoicesApi, region_key="billing", route="Invoices")

    assert dict(m.headers) == {}
    assert len(d) == 0
    with pytest.raises(TypeError):
        m.headers["X-Other"] = "1"
    with pytest.raises(TypeError):
        d.methods[InvoicesApi.listing] = m
