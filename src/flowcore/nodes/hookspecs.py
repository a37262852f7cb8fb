# src/flowcore/nodes/hookspecs.py
"""pluggy hook specifications for flowcore node packages.

Node packages implement these hooks to register their node classes with a
NodeRegistry. The registry calls them during register_builtin_nodes() and
load_entrypoint_nodes().

Usage (implementing a node package):
    from flowcore.nodes.hookspecs import hookimpl

    class MyNodes:
        @hookimpl  # NOT @hookspec - that's for defining specs
        def flowcore_get_nodes(self):
            return [MyNode]

Third-party packages expose a module holding module-level hookimpls
under the "flowcore" entry-point group:
    [project.entry-points.flowcore]
    my_nodes = "my_package.nodes"
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from flowcore.nodes.base import BaseNode

# Project name for pluggy; also the entry-point group name
PROJECT_NAME = "flowcore"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)

hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class FlowcoreNodeSpec:
    """Hook specifications for node packages."""

    @hookspec
    def flowcore_get_nodes(self) -> list[type["BaseNode"]]:  # type: ignore[empty-body]
        """Return node classes (not instances) to register."""
