"""Tests for input overrides and format resolution."""

import copy

import pytest

from comfy_relay.schemas.workflow import WorkflowFormat
from comfy_relay.services.inputs import apply_inputs, set_by_path
from comfy_relay.services.workflow_format import detect_workflow_format, resolve_api_prompt


def test_dotted_path_keeps_siblings(api_prompt):
    """Test that a dotted path replaces only the addressed field."""
    result = apply_inputs(api_prompt, {"6.inputs.text": "hello"})
    assert result["6"]["inputs"] == {"text": "hello", "seed": 5}


def test_node_shorthand_merges_inputs(api_prompt):
    """Test shallow merge into a node's inputs."""
    result = apply_inputs(api_prompt, {"6": {"seed": 99}})
    assert result["6"]["inputs"] == {"text": "old", "seed": 99}
    assert result["6"]["class_type"] == "CLIPTextEncode"


def test_node_shorthand_needs_dict_value(api_prompt):
    """Test that a non-dict value replaces the node outright."""
    result = apply_inputs(api_prompt, {"6": "gone"})
    assert result["6"] == "gone"


def test_unknown_key_set_at_top_level(api_prompt):
    """Test the top-level fallback."""
    result = apply_inputs(api_prompt, {"99": {"seed": 1}, "client": "x"})
    assert result["99"] == {"seed": 1}
    assert result["client"] == "x"


def test_dotted_path_creates_missing_segments(api_prompt):
    """Test intermediate objects created on demand."""
    result = apply_inputs(api_prompt, {"10.inputs.width": 512, "3.inputs": 7})
    assert result["10"] == {"inputs": {"width": 512}}
    assert result["3"]["inputs"] == 7


def test_original_never_mutated(api_prompt):
    """Test that the input prompt is left untouched."""
    snapshot = copy.deepcopy(api_prompt)

    apply_inputs(api_prompt, {"6.inputs.text": "hello", "3": {"seed": 1}, "new": 1})

    assert api_prompt == snapshot


def test_no_inputs_returns_copy(api_prompt):
    result = apply_inputs(api_prompt)
    assert result == api_prompt
    assert result is not api_prompt


def test_set_by_path_replaces_scalar_segment():
    """Test that a scalar in the middle of a path is replaced by a dict."""
    target = {"a": 1}
    set_by_path(target, "a.b", 2)
    assert target == {"a": {"b": 2}}


@pytest.mark.parametrize(
    "workflow, expected",
    [
        ({"nodes": [], "links": []}, WorkflowFormat.GRAPH),
        ({"nodes": [], "links": {}}, WorkflowFormat.API),
        ({"nodes": []}, WorkflowFormat.API),
        ({"3": {"class_type": "KSampler", "inputs": {}}}, WorkflowFormat.API),
        ([], WorkflowFormat.API),
        (None, WorkflowFormat.API),
    ],
)
def test_detect_workflow_format(workflow, expected):
    """Test shape-based format detection."""
    assert detect_workflow_format(workflow) is expected


class _Converter:
    def __init__(self):
        self.calls = []

    def convert_workflow(self, workflow):
        self.calls.append(workflow)
        return {"1": {"class_type": "Converted", "inputs": {}}}


def test_resolve_api_prompt_converts_graphs():
    """Test that graph workflows go through the converter."""
    converter = _Converter()
    graph = {"nodes": [], "links": []}

    assert resolve_api_prompt(graph, None, converter) == {"1": {"class_type": "Converted", "inputs": {}}}
    assert converter.calls == [graph]


def test_resolve_api_prompt_passes_api_through(api_prompt):
    """Test that execution format and explicit api format skip conversion."""
    converter = _Converter()

    assert resolve_api_prompt(api_prompt, None, converter) is api_prompt
    assert resolve_api_prompt({"nodes": [], "links": []}, WorkflowFormat.API, converter) == {
        "nodes": [],
        "links": [],
    }
    assert converter.calls == []
