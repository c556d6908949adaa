"""Custom pylint rules for annotation style and RPC dispatch policy."""

from __future__ import annotations

from typing import Optional

from astroid import exceptions
from astroid import nodes
from pylint.checkers import BaseChecker
from pylint.lint import PyLinter


_MESSAGE_PREFER_OPTIONAL = "prefer-optional"
_MESSAGE_NO_RAW_METHOD_DISPATCH = "no-raw-method-dispatch"
_MESSAGE_NO_SHADOWED_TRANSPORT_MEMBERS = "no-shadowed-transport-members"

_DISPATCH_METHOD = "invoke"
_TRANSPORT_CLASS = "JsonRpcTransport"


class ProjectRulesChecker(BaseChecker):
    """Project-specific AST checks."""

    name = "project-rules"

    msgs = {
        "C9501": (
            "Use Optional[T] instead of T | None in annotations",
            _MESSAGE_PREFER_OPTIONAL,
            "Project style requires Optional[T] for nullable annotations.",
        ),
        "E9502": (
            "RPC method %r dispatched as a string; pass an RpcMethod member",
            _MESSAGE_NO_RAW_METHOD_DISPATCH,
            "invoke() only accepts members of the generated RpcMethod enumeration.",
        ),
        "E9503": (
            "Member %r shadows %s member",
            _MESSAGE_NO_SHADOWED_TRANSPORT_MEMBERS,
            "Client classes must not replace members of the JSON-RPC transport.",
        ),
    }

    def visit_binop(self, node: nodes.BinOp) -> None:
        """Flag ``T | None`` when it appears inside an annotation."""
        if node.op != "|":
            return
        if not (_is_none_literal(node.left) or _is_none_literal(node.right)):
            return
        if _within_annotation(node):
            self.add_message(_MESSAGE_PREFER_OPTIONAL, node=node)

    def visit_call(self, node: nodes.Call) -> None:
        """Reject ``.invoke("method", ...)`` calls with a string literal method."""
        func = node.func
        if not isinstance(func, nodes.Attribute) or func.attrname != _DISPATCH_METHOD:
            return
        method_arg = node.args[0] if node.args else _keyword_value(node, "method")
        if isinstance(method_arg, nodes.Const) and isinstance(method_arg.value, str):
            self.add_message(
                _MESSAGE_NO_RAW_METHOD_DISPATCH,
                node=method_arg,
                args=(method_arg.value,),
            )

    def visit_classdef(self, node: nodes.ClassDef) -> None:
        """Disallow client members that replace transport members."""
        owner = _transport_ancestor(node)
        if owner is None:
            return

        for member_name, definitions in node.locals.items():
            if member_name.startswith("__") and member_name.endswith("__"):
                continue
            if member_name not in owner.locals:
                continue
            for definition in definitions:
                self.add_message(
                    _MESSAGE_NO_SHADOWED_TRANSPORT_MEMBERS,
                    node=definition,
                    args=(member_name, owner.qname()),
                )


def _within_annotation(node: nodes.NodeNG) -> bool:
    child = node
    parent = node.parent
    while parent is not None:
        if isinstance(parent, nodes.AnnAssign):
            return child is parent.annotation
        if isinstance(parent, (nodes.FunctionDef, nodes.AsyncFunctionDef)):
            return child is parent.returns
        if isinstance(parent, nodes.Arguments):
            return any(child is annotation for annotation in _argument_annotations(parent))
        if isinstance(parent, nodes.Statement):
            return False
        child, parent = parent, parent.parent
    return False


def _argument_annotations(arguments: nodes.Arguments) -> list[Optional[nodes.NodeNG]]:
    return [
        *arguments.posonlyargs_annotations,
        *arguments.annotations,
        *arguments.kwonlyargs_annotations,
        arguments.varargannotation,
        arguments.kwargannotation,
    ]


def _transport_ancestor(node: nodes.ClassDef) -> Optional[nodes.ClassDef]:
    try:
        ancestors = node.mro()[1:]
    except (exceptions.AstroidError, RecursionError):
        return None
    return next((ancestor for ancestor in ancestors if ancestor.name == _TRANSPORT_CLASS), None)


def _keyword_value(node: nodes.Call, name: str) -> Optional[nodes.NodeNG]:
    for keyword in node.keywords or ():
        if keyword.arg == name:
            return keyword.value
    return None


def _is_none_literal(node: nodes.NodeNG) -> bool:
    return isinstance(node, nodes.Const) and node.value is None


def register(linter: PyLinter) -> None:
    """Register checker."""
    linter.register_checker(ProjectRulesChecker(linter))
