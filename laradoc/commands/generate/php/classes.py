"""Class-level view of a parsed PHP file.

Builds the metadata that analyzers need (methods, parameter types, return
types, attributes, doc comments) directly from the syntax tree.  Class names
are resolved against the file's namespace and ``use`` imports.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from laradoc.commands.generate.php.nodes import PhpNode, argument_name, argument_value
from laradoc.commands.generate.php.values import UNRESOLVED, evaluate

_BUILTIN_TYPES = frozenset({
    "int", "float", "string", "bool", "array", "object", "mixed", "void", "null",
    "callable", "iterable", "never", "false", "true", "self", "static", "parent",
})


@dataclass
class AttributeInfo:
    """A PHP 8 attribute instance with its constant arguments."""

    name: str
    args: list[Any] = field(default_factory=lambda: [])
    kwargs: dict[str, Any] = field(default_factory=lambda: {})

    @property
    def short_name(self) -> str:
        return self.name.rsplit("\\", 1)[-1]

    def get(self, key: str, position: int | None = None, default: Any = None) -> Any:
        """Fetch an argument by name, falling back to its constructor position."""
        if key in self.kwargs:
            value = self.kwargs[key]
        elif position is not None and position < len(self.args):
            value = self.args[position]
        else:
            return default
        return default if value is UNRESOLVED else value


@dataclass
class ParameterInfo:
    name: str
    type: str | None = None
    nullable: bool = False
    default: PhpNode | None = None
    attributes: list[AttributeInfo] = field(default_factory=lambda: [])

    @property
    def has_default(self) -> bool:
        return self.default is not None


@dataclass
class MethodInfo:
    name: str
    class_name: str = ""
    parameters: list[ParameterInfo] = field(default_factory=lambda: [])
    return_type: str | None = None
    return_nullable: bool = False
    attributes: list[AttributeInfo] = field(default_factory=lambda: [])
    doc_comment: str | None = None
    body: PhpNode | None = None
    visibility: str = "public"
    is_static: bool = False
    promoted: set[str] = field(default_factory=lambda: set[str]())

    def parameter(self, name: str) -> ParameterInfo | None:
        for p in self.parameters:
            if p.name == name:
                return p
        return None


@dataclass
class ClassInfo:
    name: str
    namespace: str = ""
    parent: str | None = None
    interfaces: list[str] = field(default_factory=lambda: [])
    traits: list[str] = field(default_factory=lambda: [])
    attributes: list[AttributeInfo] = field(default_factory=lambda: [])
    methods: dict[str, MethodInfo] = field(default_factory=lambda: {})
    constants: dict[str, PhpNode] = field(default_factory=lambda: {})
    properties: dict[str, PhpNode | None] = field(default_factory=lambda: {})
    property_types: dict[str, str | None] = field(default_factory=lambda: {})
    nullable_properties: set[str] = field(default_factory=lambda: set[str]())
    use_map: dict[str, str] = field(default_factory=lambda: {})
    doc_comment: str | None = None
    file: Path | None = None
    kind: str = "class"
    cases: dict[str, Any] = field(default_factory=lambda: {})

    @property
    def is_enum(self) -> bool:
        return self.kind == "enum"

    @property
    def short_name(self) -> str:
        return self.name.rsplit("\\", 1)[-1]

    def method(self, name: str) -> MethodInfo | None:
        return self.methods.get(name)

    def resolve_name(self, name: str) -> str:
        return resolve_class_name(name, self.use_map, self.namespace, self)


@dataclass
class ParsedFile:
    """Everything the source cache keeps for one file."""

    path: Path
    root: PhpNode
    namespace: str = ""
    use_map: dict[str, str] = field(default_factory=lambda: {})
    classes: list[ClassInfo] = field(default_factory=lambda: [])

    def find_class(self, name: str) -> ClassInfo | None:
        name = name.lstrip("\\")
        for cls in self.classes:
            if cls.name == name or cls.short_name == name:
                return cls
        return None


def resolve_class_name(
    name: str,
    use_map: dict[str, str],
    namespace: str = "",
    owner: ClassInfo | None = None,
) -> str:
    """Resolve a class reference to its fully-qualified name."""
    name = name.strip()
    lowered = name.lower()
    if owner is not None:
        if lowered in ("self", "static"):
            return owner.name
        if lowered == "parent" and owner.parent:
            return owner.parent
    if lowered in _BUILTIN_TYPES:
        return lowered
    if name.startswith("\\"):
        return name[1:]
    head, _, rest = name.partition("\\")
    if head in use_map:
        return use_map[head] + ("\\" + rest if rest else "")
    if namespace:
        return f"{namespace}\\{name}"
    return name


def build_parsed_file(path: Path, root: PhpNode) -> ParsedFile:
    parsed = ParsedFile(path=path, root=root)
    _collect(root, parsed, namespace="", use_map={})
    return parsed


def _collect(container: PhpNode, parsed: ParsedFile, namespace: str, use_map: dict[str, str]) -> None:
    pending_doc: str | None = None
    for node in container.children:
        if node.kind == "namespace_definition":
            name = node.child("name") or node.first("namespace_name")
            namespace = name.text if name is not None else ""
            parsed.namespace = parsed.namespace or namespace
            body = node.child("body") or node.first("compound_statement")
            if body is not None:
                _collect(body, parsed, namespace, dict(use_map))
            continue
        if node.kind == "namespace_use_declaration":
            use_map.update(_use_clauses(node))
            parsed.use_map.update(use_map)
            continue
        if node.kind == "comment":
            pending_doc = node.text if node.text.startswith("/**") else pending_doc
            continue
        if node.kind in ("class_declaration", "trait_declaration", "enum_declaration", "interface_declaration"):
            parsed.classes.append(
                _class_info(node, namespace, dict(use_map), pending_doc, parsed.path)
            )
        pending_doc = None


def _use_clauses(node: PhpNode) -> dict[str, str]:
    mapping: dict[str, str] = {}
    group_prefix = ""
    prefix_node = node.first("namespace_name")
    if node.first("namespace_use_group") is not None and prefix_node is not None:
        group_prefix = prefix_node.text.lstrip("\\") + "\\"
    for clause in node.find_all("namespace_use_clause", "namespace_use_group_clause"):
        names = clause.named("qualified_name", "name", "namespace_name")
        if not names:
            continue
        full = group_prefix + names[0].text.lstrip("\\")
        alias_node = clause.child("alias")
        if alias_node is None and len(names) > 1:
            alias_node = names[-1]
        alias = alias_node.text if alias_node is not None else full.rsplit("\\", 1)[-1]
        mapping[alias] = full
    return mapping


def _class_info(
    node: PhpNode,
    namespace: str,
    use_map: dict[str, str],
    doc: str | None,
    path: Path,
) -> ClassInfo:
    name_node = node.child("name") or node.first("name")
    short = name_node.text if name_node is not None else "anonymous"
    info = ClassInfo(
        name=f"{namespace}\\{short}" if namespace else short,
        namespace=namespace,
        use_map=use_map,
        doc_comment=doc,
        file=path,
        kind=node.kind.removesuffix("_declaration"),
    )

    base = node.first("base_clause")
    if base is not None:
        parents = base.named("name", "qualified_name")
        if parents:
            info.parent = resolve_class_name(parents[0].text, use_map, namespace)
    interfaces = node.first("class_interface_clause")
    if interfaces is not None:
        info.interfaces = [
            resolve_class_name(n.text, use_map, namespace)
            for n in interfaces.named("name", "qualified_name")
        ]
    info.attributes = _attributes(node, info)

    body = node.child("body") or node.first("declaration_list", "enum_declaration_list")
    if body is None:
        return info

    pending_doc: str | None = None
    for member in body.children:
        if member.kind == "comment":
            pending_doc = member.text if member.text.startswith("/**") else pending_doc
            continue
        if member.kind == "method_declaration":
            method = _method_info(member, info, pending_doc)
            info.methods[method.name] = method
        elif member.kind == "enum_case":
            case_name = member.child("name") or member.first("name")
            if case_name is not None:
                value = member.child("value")
                info.cases[case_name.text] = case_name.text if value is None else evaluate(value)
        elif member.kind == "use_declaration":
            info.traits.extend(
                resolve_class_name(n.text, use_map, namespace)
                for n in member.named("name", "qualified_name")
            )
        elif member.kind == "const_declaration":
            for element in member.named("const_element"):
                parts = element.expressions
                if len(parts) >= 2:
                    info.constants[parts[0].text] = parts[-1]
        elif member.kind == "property_declaration":
            prop_type, prop_nullable = _type_name(member.child("type"), info)
            for element in member.named("property_element"):
                prop_name, default = _property_element(element)
                if prop_name:
                    info.properties[prop_name] = default
                    info.property_types[prop_name] = prop_type
                    if prop_nullable:
                        info.nullable_properties.add(prop_name)
        pending_doc = None

    constructor = info.methods.get("__construct")
    if constructor is not None:
        # Promoted constructor properties
        for param in constructor.parameters:
            if param.name not in info.properties and _is_promoted(constructor, param.name):
                info.properties[param.name] = param.default
                info.property_types[param.name] = param.type
                if param.nullable:
                    info.nullable_properties.add(param.name)
    return info


def _property_element(element: PhpNode) -> tuple[str | None, PhpNode | None]:
    var = element.first("variable_name")
    name = var.text.lstrip("$") if var is not None else None
    default = element.child("default_value")
    if default is None:
        init = element.first("property_initializer")
        if init is not None and init.expressions:
            default = init.expressions[-1]
        elif len(element.expressions) > 1:
            default = element.expressions[-1]
    return name, default


def _is_promoted(constructor: MethodInfo, name: str) -> bool:
    return name in constructor.promoted


def _method_info(node: PhpNode, owner: ClassInfo, doc: str | None) -> MethodInfo:
    name_node = node.child("name") or node.first("name")
    visibility = node.first("visibility_modifier")
    method = MethodInfo(
        name=name_node.text if name_node is not None else "",
        class_name=owner.name,
        attributes=_attributes(node, owner),
        doc_comment=doc,
        body=node.child("body") or node.first("compound_statement"),
        visibility=visibility.text if visibility is not None else "public",
        is_static=node.first("static_modifier") is not None,
    )
    return_type = node.child("return_type")
    if return_type is not None:
        method.return_type, method.return_nullable = _type_name(return_type, owner)

    params = node.child("parameters") or node.first("formal_parameters")
    if params is not None:
        for p in params.named("simple_parameter", "property_promotion_parameter", "variadic_parameter"):
            var = p.child("name") or p.first("variable_name")
            if var is None:
                continue
            param_type, nullable = _type_name(p.child("type"), owner)
            param = ParameterInfo(
                name=var.text.lstrip("$"),
                type=param_type,
                nullable=nullable,
                default=p.child("default_value"),
                attributes=_attributes(p, owner),
            )
            method.parameters.append(param)
            if p.kind == "property_promotion_parameter":
                method.promoted.add(param.name)
    return method


def _type_name(node: PhpNode | None, owner: ClassInfo) -> tuple[str | None, bool]:
    """Resolve a declared type to (name, nullable).  Unions keep the first class type."""
    if node is None:
        return None, False
    if node.kind == "optional_type":
        inner, _ = _type_name(node.expressions[0] if node.expressions else None, owner)
        return inner, True
    if node.kind in ("union_type", "intersection_type", "disjunctive_normal_form_type"):
        nullable = False
        chosen: str | None = None
        for part in node.expressions:
            name, part_nullable = _type_name(part, owner)
            nullable = nullable or part_nullable or name == "null"
            if name and name != "null" and (chosen is None or chosen in _BUILTIN_TYPES):
                chosen = name
        return chosen, nullable
    if node.kind == "primitive_type":
        return node.text.lower(), False
    if node.kind == "named_type":
        inner = node.first("name", "qualified_name")
        text = inner.text if inner is not None else node.text
        return owner.resolve_name(text), False
    if node.kind in ("name", "qualified_name"):
        return owner.resolve_name(node.text), False
    if node.expressions:
        return _type_name(node.expressions[0], owner)
    return node.text or None, False


def _attributes(node: PhpNode, owner: ClassInfo) -> list[AttributeInfo]:
    result: list[AttributeInfo] = []
    for attr_list in node.named("attribute_list"):
        for attr in attr_list.find_all("attribute"):
            name_node = attr.first("name", "qualified_name")
            if name_node is None:
                continue
            info = AttributeInfo(name=owner.resolve_name(name_node.text))
            args = attr.child("parameters") or attr.first("arguments")
            if args is not None:
                for arg in args.named("argument"):
                    value = evaluate(argument_value(arg), owner.resolve_name)
                    key = argument_name(arg)
                    if key is None:
                        info.args.append(value)
                    else:
                        info.kwargs[key] = value
            result.append(info)
    return result
