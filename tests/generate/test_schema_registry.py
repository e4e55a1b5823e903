"""Tests for schema fingerprints and the component catalogue."""

from __future__ import annotations

from laradoc.commands.generate.fingerprint import fingerprint, normalize
from laradoc.commands.generate.schema_registry import SchemaRegistry, is_complex
from laradoc.commands.generate.types import SchemaObject


def _user(order: tuple[str, ...] = ("id", "name")) -> SchemaObject:
    types = {"id": SchemaObject.integer(), "name": SchemaObject.string()}
    return SchemaObject.object({k: types[k] for k in order}, required=list(order))


class TestFingerprint:
    def test_property_order_ignored(self) -> None:
        assert fingerprint(_user(("id", "name"))) == fingerprint(_user(("name", "id")))

    def test_text_ignored(self) -> None:
        a = SchemaObject.string(description="Name")
        b = SchemaObject.string(description="Full name")
        b.example = "Ada"
        assert fingerprint(a) == fingerprint(b)

    def test_enum_order_ignored(self) -> None:
        a = SchemaObject(type="string", enum=["b", "a"])
        b = SchemaObject(type="string", enum=["a", "b"])
        assert fingerprint(a) == fingerprint(b)

    def test_structure_matters(self) -> None:
        assert fingerprint(SchemaObject.string()) != fingerprint(SchemaObject.string(format="email"))
        nullable = SchemaObject.string()
        nullable.nullable = True
        assert fingerprint(nullable) != fingerprint(SchemaObject.string())

    def test_normalize_ref(self) -> None:
        assert normalize(SchemaObject.from_ref("#/components/schemas/User")) == {
            "$ref": "#/components/schemas/User"
        }


class TestSchemaRegistry:
    def test_register_returns_ref(self) -> None:
        registry = SchemaRegistry()
        ref = registry.register("user", _user())
        assert ref.ref == "#/components/schemas/User"
        assert registry.names() == ["User"]
        assert registry.resolve(ref) == _user()

    def test_same_shape_deduplicated_under_any_name(self) -> None:
        registry = SchemaRegistry()
        first = registry.register("User", _user())
        second = registry.register("Author", _user(("name", "id")))
        assert first.ref == second.ref
        assert registry.names() == ["User"]

    def test_name_collision_gets_suffix(self) -> None:
        registry = SchemaRegistry()
        registry.register("User", _user())
        other = registry.register("User", SchemaObject.object({"email": SchemaObject.string()}))
        third = registry.register("User", SchemaObject.object({"age": SchemaObject.integer()}))
        assert other.ref == "#/components/schemas/User2"
        assert third.ref == "#/components/schemas/User3"

    def test_refs_pass_through(self) -> None:
        registry = SchemaRegistry()
        ref = SchemaObject.from_ref("#/components/schemas/Thing")
        assert registry.register("Thing", ref) is ref
        assert registry.names() == []

    def test_stored_copy_is_independent(self) -> None:
        registry = SchemaRegistry()
        schema = _user()
        registry.register("User", schema)
        (schema.properties or {})["extra"] = SchemaObject.string()
        stored = registry.resolve("User")
        assert stored is not None and "extra" not in (stored.properties or {})

    def test_register_if_complex(self) -> None:
        registry = SchemaRegistry()
        flat = _user()
        assert registry.register_if_complex("User", flat) is flat

        nested = flat.with_property("team", SchemaObject.object({"id": SchemaObject.integer()}))
        assert registry.register_if_complex("User", nested).ref == "#/components/schemas/User"

        listing = SchemaObject.array(nested)
        registered = registry.register_if_complex("User", listing)
        assert registered.type == "array"
        assert registered.items is not None
        assert registered.items.ref == "#/components/schemas/User"

    def test_is_complex(self) -> None:
        assert not is_complex(SchemaObject.string())
        assert not is_complex(_user())
        assert is_complex(SchemaObject.object({"tags": SchemaObject.array()}))
        assert is_complex(SchemaObject.object({"team": SchemaObject.from_ref("#/x/Team")}))

    def test_security_schemes_first_definition_wins(self) -> None:
        registry = SchemaRegistry()
        registry.add_security_scheme("bearerAuth", {"type": "http", "scheme": "bearer"})
        registry.add_security_scheme("bearerAuth", {"type": "apiKey"})
        components = registry.components()
        assert components.security_schemes == {"bearerAuth": {"type": "http", "scheme": "bearer"}}

    def test_components_and_reset(self) -> None:
        registry = SchemaRegistry()
        registry.register("Zed", SchemaObject.object({"a": SchemaObject.string()}))
        registry.register("Alpha", SchemaObject.object({"b": SchemaObject.string()}))
        rendered = registry.components().to_dict()
        assert list(rendered["schemas"]) == ["Alpha", "Zed"]
        registry.reset()
        assert registry.components().is_empty()
        assert not registry.has("Zed")
