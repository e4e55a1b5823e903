"""Reconcile statically inferred results with captured runtime results."""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from laradoc.errors import ConfigError
from laradoc.commands.generate.types import (
    ParameterResult,
    ResponseResult,
    SchemaObject,
    SchemaResult,
)

STRATEGIES = ("static_first", "captured_first")

_SCALARS = ("string", "integer", "number", "boolean")


class ExampleMerger:
    """Fold example values into a schema without touching its type information."""

    def attach_example(self, schema: SchemaObject, example: Any) -> SchemaObject:
        if example is None or schema.is_ref:
            return schema
        if schema.type in _SCALARS:
            return _with_example(schema, example)
        if schema.type == "array" and isinstance(example, list) and schema.items is not None:
            if not example or example[0] is None:
                return _with_example(schema, example)
            clone = schema.clone()
            clone.items = self.attach_example(schema.items, example[0])
            if clone.example is None:
                clone.example = example
            return clone
        if schema.type == "object" and isinstance(example, dict) and schema.properties:
            clone = schema.clone()
            clone.properties = {
                name: self.attach_example(prop, example[name]) if name in example else prop
                for name, prop in schema.properties.items()
            }
            return clone
        return _with_example(schema, example)

    def merge_examples(self, schema: SchemaObject, examples: dict[str, Any]) -> SchemaObject:
        """Deep-merge the first of *examples* into *schema*."""
        if not examples:
            return schema
        return self.attach_example(schema, next(iter(examples.values())))


def _with_example(schema: SchemaObject, example: Any) -> SchemaObject:
    if schema.example is not None:
        return schema
    clone = schema.clone()
    clone.example = example
    return clone


class ResultMerger:
    def __init__(self, strategy: str = "static_first", examples: ExampleMerger | None = None):
        if strategy not in STRATEGIES:
            raise ConfigError(
                f"Unknown merge strategy '{strategy}' (expected one of: {', '.join(STRATEGIES)})"
            )
        self.strategy = strategy
        self.examples = examples or ExampleMerger()

    def _order(self, static: Any, captured: Any) -> tuple[Any, Any]:
        if self.strategy == "captured_first":
            return captured, static
        return static, captured

    def merge_request_body(
        self, static: SchemaResult | None, captured: SchemaResult | None
    ) -> SchemaResult | None:
        primary, secondary = self._order(static, captured)
        if primary is None:
            return secondary
        if secondary is None:
            return primary
        examples = {**secondary.examples, **primary.examples}
        schema = primary.schema
        if secondary.examples and not primary.examples:
            schema = self.examples.merge_examples(schema, secondary.examples)
        return replace(primary, schema=schema, examples=examples)

    def merge_responses(
        self,
        static: dict[int, ResponseResult],
        captured: dict[int, ResponseResult],
    ) -> dict[int, ResponseResult]:
        """Per status code: one-sided entries are adopted, shared ones keep the winner's schema."""
        primary, secondary = self._order(static, captured)
        merged = dict(primary)
        for status, result in secondary.items():
            if status not in merged:
                merged[status] = result
            else:
                merged[status] = self._merge_response(merged[status], result)
        return dict(sorted(merged.items()))

    def _merge_response(self, primary: ResponseResult, secondary: ResponseResult) -> ResponseResult:
        schema = primary.schema if primary.schema is not None else secondary.schema
        # Only a side without examples of its own borrows the other side's
        if primary.schema is not None and secondary.examples and not primary.examples:
            schema = self.examples.merge_examples(schema, secondary.examples)
        return replace(
            primary,
            schema=schema,
            description=primary.description or secondary.description,
            headers={**secondary.headers, **primary.headers},
            examples={**secondary.examples, **primary.examples},
        )

    def merge_query_parameters(
        self,
        static: list[ParameterResult],
        captured: list[ParameterResult],
    ) -> list[ParameterResult]:
        """Static parameters first; captured ones only add new names or missing examples."""
        merged: dict[str, ParameterResult] = {p.name: p for p in static}
        for param in captured:
            existing = merged.get(param.name)
            if existing is None:
                merged[param.name] = param
            elif existing.example is None and param.example is not None:
                merged[param.name] = replace(existing, example=param.example)
        return list(merged.values())
