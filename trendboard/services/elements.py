"""Addressable page elements the dashboard widgets write into."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

logger = logging.getLogger("trendboard")

ClickListener = Callable[[], None]


@dataclass
class Element:
    element_id: str
    css_class: str = ""
    text: str = ""
    listeners: List[ClickListener] = field(default_factory=list)

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.element_id, "class": self.css_class, "text": self.text}


class ElementSurface:
    """Server-side view of the page's clickable, text-settable elements.

    Elements are created on first access, so widgets can address an id
    before the page template declares it.
    """

    def __init__(self):
        self._elements: Dict[str, Element] = {}

    def element(self, element_id: str) -> Element:
        elem = self._elements.get(element_id)
        if elem is None:
            elem = Element(element_id)
            self._elements[element_id] = elem
        return elem

    def find(self, element_id: str) -> Optional[Element]:
        return self._elements.get(element_id)

    def set_class(self, element_id: str, css_class: str) -> None:
        self.element(element_id).css_class = css_class

    def set_text(self, element_id: str, text: str) -> None:
        self.element(element_id).text = text

    def on_click(self, element_id: str, listener: ClickListener) -> None:
        self.element(element_id).listeners.append(listener)

    def click(self, element_id: str) -> bool:
        """Fire the click listeners of an element; False if it doesn't exist."""
        elem = self._elements.get(element_id)
        if elem is None:
            logger.debug("Click on unknown element %s ignored", element_id)
            return False
        for listener in list(elem.listeners):
            listener()
        return True

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        return {key: elem.to_dict() for key, elem in self._elements.items()}


__all__ = ["Element", "ElementSurface"]
