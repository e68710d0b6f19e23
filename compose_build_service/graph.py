# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
""" The static build-dependency graph of the composed components. """

from collections import deque

from compose_build_service.errors import ValidationError


class DependencyGraph(object):
    """ Read-only map of component -> the components it directly depends on.

    The graph is built once at process start from conf.dependencies and is
    passed explicitly to everything that needs it. It is never mutated, so
    downstream closures are cached for the lifetime of the instance.

    Example:

        graph = DependencyGraph({"A": [], "B": ["A"], "C": ["B"]})
        graph.downstream("A")   # frozenset({"B", "C"})
        graph.dependencies("C") # frozenset({"B"})
    """

    def __init__(self, dependencies):
        self._dependencies = {
            component: frozenset(needs)
            for component, needs in dependencies.items()
        }
        self._downstream = {}
        self._validate()

    def __repr__(self):
        return "<DependencyGraph %s>" % ", ".join(sorted(self._dependencies))

    def __contains__(self, component):
        return component in self._dependencies

    @property
    def components(self):
        return sorted(self._dependencies)

    def _validate(self):
        for component, needs in self._dependencies.items():
            unknown = needs - set(self._dependencies)
            if unknown:
                raise ValueError("%s depends on unknown components: %s"
                                 % (component, ", ".join(sorted(unknown))))

        # Kahn's algorithm, whatever is left over sits on a cycle.
        remaining = {c: set(needs) for c, needs in self._dependencies.items()}
        ready = deque(c for c, needs in remaining.items() if not needs)
        while ready:
            done = ready.popleft()
            del remaining[done]
            for component, needs in remaining.items():
                if done in needs:
                    needs.discard(done)
                    if not needs:
                        ready.append(component)
        if remaining:
            raise ValueError("Dependency cycle between: %s"
                             % ", ".join(sorted(remaining)))

    def _check_known(self, component):
        if component not in self._dependencies:
            raise ValidationError("Unknown component: %s" % component)

    def dependencies(self, component):
        """ Returns the direct build dependencies of the component. """
        self._check_known(component)
        return self._dependencies[component]

    def downstream(self, component):
        """ Returns every component that depends on `component`, directly or
        transitively, excluding the component itself.

        :raises ValidationError: when the component is not in the graph
        """
        self._check_known(component)
        if component in self._downstream:
            return self._downstream[component]

        queue = deque([component])
        visited = set()
        while queue:
            current = queue.popleft()
            if current in visited:
                continue
            visited.add(current)
            for other, needs in self._dependencies.items():
                if current in needs:
                    queue.append(other)

        visited.discard(component)
        self._downstream[component] = frozenset(visited)
        return self._downstream[component]

    def json(self):
        return {
            component: {
                'dependencies': sorted(self._dependencies[component]),
                'downstream': sorted(self.downstream(component)),
            }
            for component in self.components
        }
