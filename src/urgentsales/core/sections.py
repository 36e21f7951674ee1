"""
Scroll-driven section tracking for the project detail page.

Given the vertical offset of each page section, works out which section
the reader is looking at and where to scroll to show a section below the
fixed header.
"""

from collections.abc import Mapping


class SectionTracker:
    """
    Args:
        offsets: section id → top offset in px, in page order
        header_offset: height of the sticky header
        activation_margin: a section becomes active this many px before
            its top reaches the viewport top
    """

    def __init__(
        self,
        offsets: Mapping[str, float],
        header_offset: float = 80,
        activation_margin: float = 100,
    ) -> None:
        if not offsets:
            raise ValueError("At least one section is required")
        self.offsets = dict(offsets)
        self.header_offset = header_offset
        self.activation_margin = activation_margin

    @property
    def sections(self) -> list[str]:
        return list(self.offsets)

    def active_section(self, scroll_y: float) -> str:
        """Last section whose top minus the margin is at or above scroll_y."""
        active = self.sections[0]
        for section, top in self.offsets.items():
            if scroll_y >= top - self.activation_margin:
                active = section
        return active

    def scroll_target(self, section: str) -> float:
        """Scroll position that puts the section just below the header."""
        if section not in self.offsets:
            raise KeyError(f"Unknown section {section!r}")
        return self.offsets[section] - self.header_offset

    def update_offset(self, section: str, top: float) -> None:
        """Record a new offset after layout changes (images loading, resize)."""
        if section not in self.offsets:
            raise KeyError(f"Unknown section {section!r}")
        self.offsets[section] = top
