"""
Graph — async reads composed as a dependency graph.

    from orderflow import graph as G

    @G.node
    class CartNode:
        def __init__(self, data: CartSnapshot) -> None:
            self.data = data

        @classmethod
        async def __compose__(cls, request: SessionRequest, stores: Stores) -> "CartNode":
            ...

    result = await G.attempt(CartNode, request, stores)
"""

from nodnod import scalar_node as node

from orderflow.graph._run import compose, attempt

__all__ = ("node", "compose", "attempt")
