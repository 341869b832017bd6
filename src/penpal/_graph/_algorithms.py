"""Graph algorithms over node-id adjacency mappings."""

from collections.abc import Collection, Hashable, Mapping


def find_cycle[T: Hashable](successors: Mapping[T, Collection[T]]) -> list[T] | None:
    """Return one cycle as a node list (first node repeated at the end), or None."""
    white, grey, black = 0, 1, 2
    color: dict[T, int] = dict.fromkeys(successors, white)
    parent: dict[T, T] = {}

    for root in successors:
        if color.get(root, white) != white:
            continue
        stack: list[tuple[T, list[T]]] = [(root, list(successors.get(root, ())))]
        color[root] = grey
        while stack:
            node, pending = stack[-1]
            if not pending:
                color[node] = black
                stack.pop()
                continue
            nxt = pending.pop(0)
            state = color.get(nxt, white)
            if state == grey:
                cycle = [nxt]
                current = node
                while current != nxt:
                    cycle.append(current)
                    current = parent[current]
                cycle.append(nxt)
                cycle.reverse()
                return cycle
            if state == white:
                parent[nxt] = node
                color[nxt] = grey
                stack.append((nxt, list(successors.get(nxt, ()))))
    return None
