from agentflow.context import ExecutionContext
from agentflow.contracts import StepResult


def _result(**payload):
    return StepResult(kind="test", payload=payload)


def test_variables_are_last_writer_wins():
    ctx = ExecutionContext("run-1")
    ctx.set_variable("count", 1)
    ctx.merge_variables({"count": 2, "other": "x"})

    assert ctx.get_variable("count") == 2
    assert ctx.get_variable("other") == "x"
    assert ctx.get_variable("missing") is None
    assert ctx.get_variable("missing", "fallback") == "fallback"
    assert ctx.has_variable("other")


def test_snapshot_is_detached_copy():
    ctx = ExecutionContext("run-1")
    ctx.set_variable("items", [1, 2])
    snapshot = ctx.snapshot()
    snapshot["items"].append(3)

    assert ctx.get_variable("items") == [1, 2]


def test_upstream_field_prefers_most_recent_producer():
    ctx = ExecutionContext("run-1")
    ctx.record_result("first", _result(records=[1]))
    ctx.record_result("second", _result(records=[2], other=True))
    ctx.record_result("third", _result(unrelated=True))

    assert ctx.get_upstream_field("records") == [2]
    assert ctx.get_upstream_field("unrelated") is True
    assert ctx.get_upstream_field("nothing") is None


def test_rerun_step_moves_to_end_of_log():
    ctx = ExecutionContext("run-1")
    ctx.record_result("a", _result(value="old"))
    ctx.record_result("b", _result(value="b"))
    ctx.record_result("a", _result(value="new"))

    assert ctx.step_ids == ["b", "a"]
    assert ctx.get_upstream_field("value") == "new"


def test_interpolate_prefers_local_vars_and_keeps_unknown_tokens():
    ctx = ExecutionContext("run-1")
    ctx.set_variable("contact_name", "Global")
    ctx.set_variable("company", "Acme")

    text = ctx.interpolate(
        "Hi {{contact_name}} from {{ company }}, {{missing}}", {"contact_name": "Local"}
    )

    assert text == "Hi Local from Acme, {{missing}}"


def test_interpolate_treats_none_as_unresolved():
    ctx = ExecutionContext("run-1")
    assert ctx.interpolate("{{name}}", {"name": None}) == "{{name}}"
