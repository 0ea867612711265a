from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional


@dataclass
class VisualNode:
    """One element of a rendered tree: a tag, CSS-style properties and children."""

    tag: str
    class_name: str = ""
    style: Dict[str, Any] = field(default_factory=dict)
    attrs: Dict[str, Any] = field(default_factory=dict)
    text: Optional[str] = None
    children: List["VisualNode"] = field(default_factory=list)
    on_click: Optional[Callable[[], None]] = None
    stop_propagation: bool = False

    def walk(self) -> Iterator["VisualNode"]:
        yield self
        for child in self.children:
            yield from child.walk()

    def find_all(self, class_name: str) -> List["VisualNode"]:
        return [n for n in self.walk() if class_name in n.class_name.split()]

    def find(self, class_name: str) -> Optional["VisualNode"]:
        found = self.find_all(class_name)
        return found[0] if found else None

    def text_content(self) -> str:
        return "".join(n.text for n in self.walk() if n.text)


def placeholder(class_name: str, message: str, error_class: str) -> VisualNode:
    return VisualNode("div", class_name, children=[VisualNode("div", error_class, text=message)])


def _path_to(root: VisualNode, target: VisualNode) -> Optional[List[VisualNode]]:
    if root is target:
        return [root]
    for child in root.children:
        path = _path_to(child, target)
        if path:
            return [root] + path
    return None


def dispatch_click(root: VisualNode, target: VisualNode) -> int:
    """Bubble a click from ``target`` up to ``root``; returns how many handlers ran."""
    path = _path_to(root, target)
    if path is None:
        raise ValueError("target is not part of this tree")
    handled = 0
    for node in reversed(path):
        if node.on_click is not None:
            node.on_click()
            handled += 1
        if node.stop_propagation:
            break
    return handled
