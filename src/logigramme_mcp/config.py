"""Configuration dataclasses for the logigramme editor engine."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class GridLayoutConfig:
    """Deterministic grid placement used for freshly synced nodes."""
    start_x: float = 90
    start_y: float = 70
    col_width: float = 320
    row_gap: float = 120
    min_columns: int = 3
    max_columns: int = 6


@dataclass
class EditorConfig:
    """Settings for one editor instance."""
    grid_size: int = 10
    snap_to_grid: bool = True
    # Alignment guides
    guides_enabled: bool = True
    snap_threshold: float = 8
    guide_padding: float = 50
    # Clipboard
    paste_offset: tuple[float, float] = (20, 20)
    # Undo depth; each entry is a full graph copy
    history_limit: int = 100
    # Re-derive nodes whenever the step list changes
    auto_sync: bool = True
    orthogonal_edges: bool = True
    grid_layout: GridLayoutConfig = field(default_factory=GridLayoutConfig)
