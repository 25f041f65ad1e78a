from __future__ import annotations
from typing import Any, Optional
from collections.abc import Sequence
import shutil

import torch


PRINT_WIDTH, PRINT_HEIGHT = shutil.get_terminal_size((80, 20))


def table_repr(object: Any) -> str:
    if object is None:
        _repr = "None"
    elif isinstance(object, torch.Tensor):
        if object.is_floating_point():
            _repr = "[" + ", ".join(f"{value:.4g}" for value in object.flatten().tolist()) + "]"
        else:
            _repr = "[" + ", ".join(str(value) for value in object.flatten().tolist()) + "]"
    else:
        _repr = str(object)

    return _repr


def create_table(name: str,
                 headers: Sequence[str],
                 columns: Sequence[Sequence[Any]],
                 width: Optional[int] = None,
                 height: Optional[int] = None) -> list[str]:
        # Prepare ...
        if width is None:
            width = PRINT_WIDTH

        if height is None:
            height = PRINT_HEIGHT

        if height <= 8:
            raise ValueError("Height too small")

        assert len(headers) == len(columns)
        assert len(set(map(len, columns))) == 1
        length = len(columns[0])

        index_width = max(len(str(length)) + 1, 4)  # Need to be able to fit "time"
        index_column_width = index_width + 2
        content_column_width = (width - index_column_width - len(headers)) // len(headers)
        content_width = content_column_width - 2

        #  Create repr lines ...
        repr_lines = []
        repr_lines.append(f"{name}(")
        repr_lines.append(header_row := create_row("time", *headers, index_width=index_width, content_width=content_width))
        repr_lines.append("=" * len(header_row))

        # Lines left for time rows after name, header, rule, closing bracket and a skip row
        visible = height - 5
        if length <= visible + 1:
            upper_times, lower_times = range(length), range(0)
        else:
            upper_times, lower_times = range(visible - 2), range(length - 2, length)

        for time in upper_times:
            row = create_row(f"{time} ", *(table_repr(column[time]) for column in columns),
                             index_width=index_width, content_width=content_width)
            repr_lines.append(row)

        if lower_times:
            skip_row = create_row('... ', *(['...'] * len(headers)), index_width=index_width, content_width=content_width)
            repr_lines.append(skip_row)

        for time in lower_times:
            row = create_row(f"{time} ", *(table_repr(column[time]) for column in columns),
                             index_width=index_width, content_width=content_width)
            repr_lines.append(row)

        repr_lines.append(")")

        return repr_lines


def create_row(index: str, *cells: str, index_width: int, content_width: int) -> str:
    cells = [f"{shorten_content(cell, content_width) : ^{content_width}}" for cell in cells]
    return " " + " | ".join([f"{index : >{index_width}}", *cells])


def shorten_content(content: str, width: int, placeholder: str = "...") -> str:
    # Cells are single-line; keep the closing bracket
    if width < len(placeholder) + 1:
        raise ValueError("Width too small")

    if len(content) <= width:
        return content
    return content[:width - len(placeholder) - 1] + placeholder + content[-1]
