"""Merge function declarations that share a qualified name."""

from __future__ import annotations

from declarations.models import FunctionDeclaration, ParamInfo

VARIADIC_NAME = "...args"
VARIADIC_FALLBACK = "Array<any>"


def union_types(existing: str, incoming: str) -> str:
    """``(a) | (b)``, collapsed when both sides are identical."""
    if existing == incoming:
        return existing
    return f"({existing}) | ({incoming})"


def _merge_names(existing: str, incoming: str) -> tuple[str, bool]:
    optional = existing.endswith("?") or incoming.endswith("?")
    left, right = existing.rstrip("?"), incoming.rstrip("?")
    if left == right:
        return left, optional
    return f"{left}_or_{right}", optional


def _merge_variadic(
    existing: tuple[str, ParamInfo] | None, incoming: tuple[str, ParamInfo] | None
) -> ParamInfo:
    types = {
        side[1].type
        for side in (existing, incoming)
        if side is not None and side[0] == VARIADIC_NAME
    }
    if len(types) == 1:
        return ParamInfo(type=types.pop())
    return ParamInfo(type=VARIADIC_FALLBACK)


def merge(existing: FunctionDeclaration, incoming: FunctionDeclaration) -> FunctionDeclaration:
    """Fuse two definitions of one function into a conservative signature.

    Walks both parameter lists positionally up to the longer length. A
    position present on both sides becomes ``a_or_b: (A) | (B)``; a position
    present on one side only becomes optional (``name?``), as does every
    later position. A variadic parameter on either side absorbs the rest.
    Not commutative: names and ``is_static`` follow ``existing``.
    """
    left = list(existing.params.items())
    right = list(incoming.params.items())

    params: dict[str, ParamInfo] = {}
    optional_seen = False
    for index in range(max(len(left), len(right))):
        e = left[index] if index < len(left) else None
        n = right[index] if index < len(right) else None

        if (e is not None and e[0] == VARIADIC_NAME) or (
            n is not None and n[0] == VARIADIC_NAME
        ):
            params[VARIADIC_NAME] = _merge_variadic(e, n)
            break

        if e is not None and n is not None:
            name, optional = _merge_names(e[0], n[0])
            info = ParamInfo(
                type=union_types(e[1].type, n[1].type),
                description=e[1].description or n[1].description,
            )
        else:
            single = e if e is not None else n
            assert single is not None
            name, optional = single[0].rstrip("?"), True
            info = single[1]

        optional_seen = optional_seen or optional
        params[f"{name}?" if optional_seen else name] = info

    if existing.return_type is None and incoming.return_type is None:
        return_type = None
    else:
        return_type = union_types(
            existing.return_type or "void", incoming.return_type or "void"
        )

    return existing.model_copy(
        update={
            "params": params,
            "return_type": return_type,
            "comments": [*existing.comments, *incoming.comments],
        }
    )


__all__ = ["merge", "union_types"]
