"""
Graph — multi-step async workflows as nodnod dependency graphs.

    from storefront import graph as G

    @G.node
    class LoadCustomer:
        @classmethod
        async def __compose__(cls, request: SubmissionRequest) -> "LoadCustomer":
            ...

    result = await G.compose(LoadCustomer, request)

Note: modules defining nodes must not use ``from __future__ import
annotations``; nodnod reads the __compose__ hints at runtime.
"""

from __future__ import annotations

from collections.abc import Callable, Coroutine
from typing import Any, cast

from nodnod import EventLoopAgent, Node, Scope, Value
from nodnod import scalar_node as node


async def compose[T](target: type[T], *inputs: object, detail: str = "run") -> T:
    """
    Resolve ``target`` and everything it depends on.

    Inputs are pushed into a fresh scope under their runtime type.
    Exceptions raised by a node propagate unchanged.

        order = await compose(PersistOrderNode, request)
    """
    agent = EventLoopAgent.build({cast(type[Node[Any, Any]], target)})
    run = cast(
        Callable[[Scope, dict[type[Any], Scope]], Coroutine[Any, Any, None]],
        getattr(agent, "run"),
    )

    scope = Scope(detail=detail)
    async with scope:
        for value in inputs:
            scope.push(Value(type(value), value))
        await run(scope, {})

        resolved = scope.get(target)
        if resolved is None:
            raise LookupError(f"{target.__name__} was not resolved by {detail}")
        return cast(T, resolved.value)


__all__ = ("node", "compose")
