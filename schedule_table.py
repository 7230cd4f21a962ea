"""Plain-text bordered table used to print payment schedules."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Mapping

DEFAULT_SPACING = 2


@dataclass(frozen=True)
class Column:
    label: str
    spacing: int = DEFAULT_SPACING

    @property
    def width(self) -> int:
        return len(self.label) + self.spacing


class ScheduleTable:
    """Columns are registered by label; rows are mappings of label to value.

        table = ScheduleTable()
        table.register("payment", 4)
        print(table.header(), end="")
        print(table.row({"payment": "1000.00"}), end="")
        print(table.border(), end="")
    """

    def __init__(self) -> None:
        self._columns: List[Column] = []

    @property
    def labels(self) -> List[str]:
        return [column.label for column in self._columns]

    def register(self, label: str, spacing: int = DEFAULT_SPACING) -> None:
        if spacing < 0:
            raise ValueError("Column spacing cannot be negative")
        label = label.upper()
        if label in self.labels:
            raise ValueError(f"Column {label!r} is already registered")
        self._columns.append(Column(label=label, spacing=spacing))

    def border(self) -> str:
        return "".join("+" + "-" * column.width for column in self._columns) + "+\n"

    def header(self) -> str:
        cells = []
        for column in self._columns:
            right = column.spacing // 2
            left = column.spacing - right
            cells.append("|" + " " * left + column.label + " " * right)
        return self.border() + "".join(cells) + "|\n" + self.border()

    def row(self, values: Mapping[str, object]) -> str:
        """Render one row; values are centered, odd padding goes to the left."""
        if not values:
            return ""
        by_label = {str(key).upper(): value for key, value in values.items()}
        cells = []
        for column in self._columns:
            if column.label not in by_label:
                continue
            text = str(by_label[column.label])
            spare = max(column.width - len(text), 0)
            right = spare // 2
            left = spare - right
            cells.append("|" + " " * left + text + " " * right)
        return "".join(cells) + "|\n"
