"""
One-shot composition of a node graph.

The target's dependencies are discovered from its __compose__ signature;
inputs are bound by their runtime type, and nodes that do not depend on
each other run concurrently.
"""

from __future__ import annotations

import logging
from typing import Any, cast

from kungfu import Result, Ok, Error
from nodnod import Scope, Value, EventLoopAgent, Node

from orderflow.domain import CheckoutError

logger = logging.getLogger(__name__)


async def compose[T](target: type[T], *inputs: object) -> T:
    """
    Build target from inputs. Raises whatever a node raises.

    Example:
        node = await compose(LiveTotalsNode, request, stores)
    """
    agent = EventLoopAgent.build({cast(type[Node[Any, Any]], target)})

    scope = Scope(detail=target.__name__)
    async with scope:
        for value in inputs:
            scope.push(Value(type(value), value))
        await agent.run(scope, {})

        built = scope.get(target)
        if built is None:
            raise LookupError(f"{target.__name__} was not composed")
        return cast(T, built.value)


async def attempt[T](target: type[T], *inputs: object) -> Result[T, CheckoutError]:
    """
    compose() with CheckoutError lifted into Result.

    Nodes signal expected failures by raising CheckoutError; this is the
    boundary where they become values again.
    """
    try:
        return Ok(await compose(target, *inputs))
    except CheckoutError as e:
        logger.info("%s stopped: %s (%s)", target.__name__, e.message, e.code)
        return Error(e)


__all__ = ("compose", "attempt")
