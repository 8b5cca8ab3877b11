"""Mutually exclusive selection buttons."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from trendboard.services.elements import ElementSurface

CLASS_BUTTON_NORMAL = "btn btn-primary"
CLASS_BUTTON_ACTIVE = "btn btn-success"

OptionConfig = Dict[str, Any]
ParamResolver = Callable[[str], Optional[str]]


class SelectionGroup:
    """A group of buttons of which exactly one is active.

    ``options`` maps a button key to its config: an optional ``caption``
    (the key is shown when missing), an optional ``on_click`` callback and
    any other fields the caller wants to carry along (returned untouched by
    :meth:`get_current_option`). The mapping is kept by reference.

    The group name doubles as the URL parameter that preselects a button,
    e.g. ``/?count=builds``. Element ids are ``option_prefix + key``, the
    prefix defaults to ``group_name + "_"``.

    ``on_click`` on the group runs on every click, before the clicked
    button's own ``on_click``.
    """

    def __init__(
        self,
        group_name: str,
        options: Optional[Dict[str, OptionConfig]],
        default_option: Optional[str] = None,
        option_prefix: Optional[str] = None,
        surface: Optional[ElementSurface] = None,
    ):
        self.group_name = group_name or ""
        self.options: Dict[str, OptionConfig] = (
            options if options else {"button1": {}, "button2": {}}
        )
        self.option_prefix = option_prefix if option_prefix else self.group_name + "_"
        self.surface = surface if surface is not None else ElementSurface()
        self.on_click: Optional[Callable[[], None]] = None

        self.default_option = self._resolve_default(default_option)
        self.current_option = self.default_option

    def _resolve_default(self, requested: Optional[str]) -> str:
        if requested and requested in self.options:
            return requested
        keys = self.option_keys()
        return keys[0] if keys else ""

    def option_keys(self) -> List[str]:
        return list(self.options.keys())

    def is_valid(self, key: Optional[str]) -> bool:
        return bool(key) and key in self.options

    # -------- state --------
    def set_current_option(self, key: Optional[str]) -> None:
        """Select ``key`` if it is a known button, else keep a valid selection.

        Unknown or empty keys are ignored (they usually come from a hand
        edited URL); the default is only used when the current selection
        itself is not valid.
        """
        if self.is_valid(key):
            self.current_option = key
        elif not self.is_valid(self.current_option):
            self.current_option = self.default_option

    def get_current_option(self) -> OptionConfig:
        config = self.options[self.current_option]
        config["name"] = self.current_option
        return config

    def get_option_caption(self, key: Optional[str] = None) -> str:
        if not key:
            key = self.current_option
        config = self.options.get(key) or {}
        if "caption" in config:
            return config["caption"]
        return key

    def external_id(self, key: str) -> str:
        return self.option_prefix + key

    # -------- page elements --------
    def apply_visual_state(self) -> None:
        for key in self.options:
            css_class = CLASS_BUTTON_ACTIVE if key == self.current_option else CLASS_BUTTON_NORMAL
            self.surface.set_class(self.external_id(key), css_class)

    def bind_click(self, key: Optional[str]) -> None:
        if not key:
            key = self.default_option

        def clicked() -> None:
            self.set_current_option(key)
            self.apply_visual_state()

            # group-wide callback first, then the button's own
            if self.on_click is not None:
                self.on_click()
            option_callback = self.options[key].get("on_click")
            if option_callback is not None:
                option_callback()

        self.surface.on_click(self.external_id(key), clicked)

    def activate(self, resolve_param: Optional[ParamResolver] = None) -> None:
        """Apply the URL override, wire up every button and format them."""
        if resolve_param is not None:
            self.set_current_option(resolve_param(self.group_name))

        for key in self.options:
            self.bind_click(key)
            self.surface.set_text(self.external_id(key), self.get_option_caption(key))

        self.apply_visual_state()

    def click(self, key: str) -> bool:
        """Simulate a click on the button for ``key``."""
        return self.surface.click(self.external_id(key))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.group_name,
            "current": self.current_option,
            "default": self.default_option,
            "options": [
                {
                    "key": key,
                    "id": self.external_id(key),
                    "caption": self.get_option_caption(key),
                    "active": key == self.current_option,
                }
                for key in self.options
            ],
        }


__all__ = ["CLASS_BUTTON_ACTIVE", "CLASS_BUTTON_NORMAL", "SelectionGroup"]
