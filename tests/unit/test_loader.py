import json
from pathlib import Path

import pytest

from agentflow.errors import ConfigurationError
from agentflow.loader import load_workflow, parse_workflow, validate_workflow

WORKFLOW_YAML = """
id: outreach
name: Outreach
variables:
  campaign: spring
steps:
  - id: load
    type: data_source
    name: Load contacts
    config:
      sheet_url: https://docs.google.com/spreadsheets/d/abc/edit
  - id: check
    type: condition
    config:
      condition_logic: "{{data_count}} > 0"
      false_step: done
  - id: done
    type: wait_delay
    config:
      duration: 0
      continueOnError: true
connections:
  - id: c1
    from: load
    to: check
"""


def test_load_yaml_workflow(tmp_path):
    path = tmp_path / "outreach.yaml"
    path.write_text(WORKFLOW_YAML)

    workflow = load_workflow(path)

    assert workflow.id == "outreach"
    assert workflow.variables == {"campaign": "spring"}
    assert [step.kind for step in workflow.steps] == ["data_source", "condition", "wait_delay"]
    assert workflow.steps[0].display_name == "Load contacts"
    assert workflow.steps[1].display_name == "check"
    assert workflow.steps[2].continue_on_error is True
    assert workflow.connections[0].source == "load"
    assert validate_workflow(workflow) == []


def test_load_json_workflow(tmp_path):
    path = tmp_path / "wf.json"
    path.write_text(json.dumps({"steps": [{"id": "a", "type": "wait_delay"}]}))

    workflow = load_workflow(path)

    assert workflow.name == "Untitled Workflow"
    assert workflow.steps[0].config == {}


@pytest.mark.parametrize(
    "name, content",
    [
        ("bad.yaml", "steps: [unclosed"),
        ("bad.json", "{not json"),
        ("list.yaml", "- just\n- a list\n"),
        ("invalid.yaml", "steps:\n  - name: no id or type\n"),
        ("wf.txt", "steps: []"),
    ],
)
def test_load_rejects_bad_files(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content)
    with pytest.raises(ConfigurationError):
        load_workflow(path)


def test_load_missing_file(tmp_path):
    with pytest.raises(ConfigurationError):
        load_workflow(tmp_path / "missing.yaml")


def test_validate_reports_problems():
    workflow = parse_workflow(
        {
            "steps": [
                {"id": "a", "type": "wait_delay"},
                {"id": "a", "type": "teleport"},
                {"id": "c", "type": "condition", "config": {"true_step": "ghost"}},
            ],
            "connections": [{"from": "a", "to": "nowhere"}],
        }
    )

    problems = validate_workflow(workflow)

    assert "Duplicate step id: a" in problems
    assert "Step a: unknown step type teleport" in problems
    assert "Step c: branch target ghost does not exist" in problems
    assert any("unknown step nowhere" in problem for problem in problems)


def test_bundled_guide_workflow_is_valid():
    path = Path(__file__).resolve().parents[2] / "guides" / "outreach.yaml"
    workflow = load_workflow(path)

    assert validate_workflow(workflow) == []
    assert workflow.get_step("gate").config["false_step"] == "done"
