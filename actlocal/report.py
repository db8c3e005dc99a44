"""Text views of a plan: a box graph of stages and a table of jobs."""

from __future__ import annotations

import sys
from typing import NamedTuple, Protocol, Sequence, TextIO

from .draw import Pen, Style

__all__ = ["draw_graph", "print_list"]

_DUPLICATE_NOTICE = (
    "\nDetected multiple jobs with the same job name, use `-W` to specify "
    "the path to the specific workflow.\n"
)


class _Workflow(Protocol):
    name: str
    file: str

    def on(self) -> Sequence[str]: ...


class _Run(Protocol):
    job_id: str
    workflow: _Workflow


class _Stage(Protocol):
    runs: Sequence[_Run]


class _Plan(Protocol):
    stages: Sequence[_Stage]


class _Line(NamedTuple):
    stage: str
    job_id: str
    job_name: str
    wf_name: str
    wf_file: str
    events: str


_HEADER = _Line("Stage", "Job ID", "Job name", "Workflow name", "Workflow file", "Events")


def draw_graph(plan: _Plan, out: TextIO | None = None) -> None:
    """Draw each stage as a row of boxes, with arrows between the stages."""
    out = out if out is not None else sys.stdout
    job_pen = Pen(Style.SINGLE_LINE, 96)
    arrow_pen = Pen(Style.NO_LINE, 97)

    drawings = []
    for index, stage in enumerate(plan.stages):
        if index > 0:
            drawings.append(arrow_pen.draw_arrow())
        drawings.append(job_pen.draw_boxes(*(str(run) for run in stage.runs)))

    max_width = max((drawing.width for drawing in drawings), default=0)
    for drawing in drawings:
        drawing.draw(out, max_width)


def print_list(plan: _Plan, out: TextIO | None = None) -> None:
    """Print a table of every job in the plan, one row per job."""
    out = out if out is not None else sys.stdout
    lines: list[_Line] = []
    seen: set[str] = set()
    duplicates = False
    for index, stage in enumerate(plan.stages):
        for run in stage.runs:
            workflow = run.workflow
            lines.append(
                _Line(
                    stage=str(index),
                    job_id=run.job_id,
                    job_name=str(run),
                    wf_name=workflow.name,
                    wf_file=workflow.file,
                    events=",".join(workflow.on()),
                )
            )
            if run.job_id in seen:
                duplicates = True
            seen.add(run.job_id)

    rows = [_HEADER, *lines]
    widths = [max(len(value) for value in column) for column in zip(*rows)]
    widths = [width + 2 for width in widths[:-1]] + widths[-1:]

    for row in rows:
        out.write("".join(value.ljust(width) for value, width in zip(row, widths)) + "\n")
    if duplicates:
        out.write(_DUPLICATE_NOTICE)