import io
from dataclasses import dataclass, field

import pytest

from actlocal.report import draw_graph, print_list

DUPLICATE = "Detected multiple jobs with the same job name"


@dataclass
class FakeWorkflow:
    name: str
    file: str
    events: list = field(default_factory=list)

    def on(self):
        return self.events


@dataclass
class FakeRun:
    job_id: str
    job_name: str
    workflow: FakeWorkflow

    def __str__(self):
        return self.job_name


@dataclass
class FakeStage:
    runs: list


@dataclass
class FakePlan:
    stages: list


def make_plan(duplicate=False):
    ci = FakeWorkflow("CI", "ci.yml", ["push", "pull_request"])
    rel = FakeWorkflow("Release", "release.yml", ["release"])
    second_id = "build" if duplicate else "test"
    return FakePlan(
        [
            FakeStage([FakeRun("build", "Build it", ci), FakeRun("lint", "Lint", ci)]),
            FakeStage([FakeRun(second_id, "Run the tests", rel)]),
        ]
    )


def render_list(plan):
    out = io.StringIO()
    print_list(plan, out)
    return out.getvalue()


def test_list_has_header_and_one_row_per_job():
    lines = render_list(make_plan()).splitlines()
    assert lines[0].startswith("Stage")
    assert len(lines) == 4
    assert [line.split()[0] for line in lines[1:]] == ["0", "0", "1"]


def test_list_columns_are_aligned():
    lines = render_list(make_plan()).splitlines()
    header = lines[0]
    job_col = header.index("Job ID")
    name_col = header.index("Job name")
    events_col = header.index("Events")
    assert lines[1][job_col:].startswith("build")
    assert lines[2][job_col:].startswith("lint")
    assert lines[3][name_col:].startswith("Run the tests")
    assert lines[1][events_col:].rstrip() == "push,pull_request"
    assert lines[3][events_col:].rstrip() == "release"


def test_list_reports_duplicates():
    assert DUPLICATE in render_list(make_plan(duplicate=True))
    assert DUPLICATE not in render_list(make_plan())


def test_list_empty_plan_prints_header_only():
    lines = render_list(FakePlan([])).splitlines()
    assert len(lines) == 1
    assert lines[0].split() == ["Stage", "Job", "ID", "Job", "name", "Workflow", "name", "Workflow", "file", "Events"]


def render_graph(plan):
    out = io.StringIO()
    draw_graph(plan, out)
    return out.getvalue()


def test_graph_draws_boxes_and_arrows(monkeypatch):
    monkeypatch.delenv("CLICOLOR", raising=False)
    text = render_graph(make_plan())
    lines = text.splitlines()
    assert len(lines) == 3 * 2 + 1
    assert text.count("\u2b07") == 1
    for label in ("Build it", "Lint", "Run the tests"):
        assert f" {label} " in text


def test_graph_centers_narrower_stage(monkeypatch):
    monkeypatch.delenv("CLICOLOR", raising=False)
    lines = render_graph(make_plan()).splitlines()
    indent = [len(line) - len(line.lstrip(" ")) for line in lines]
    assert indent[0] < indent[4]
    assert indent[0] == indent[1] == indent[2]


@pytest.mark.parametrize("clicolor, code", [("0", "\x1b[0;0m"), ("1", "\x1b[96;49m")])
def test_graph_colour_codes(monkeypatch, clicolor, code):
    monkeypatch.setenv("CLICOLOR", clicolor)
    assert code in render_graph(make_plan())


def test_graph_empty_plan():
    assert render_graph(FakePlan([])) == ""