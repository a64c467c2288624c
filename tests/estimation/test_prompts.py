"""Tests for estimation prompt building."""

from __future__ import annotations

from schemas.estimation import EstimationRequest
from services.estimation.prompts import build_estimation_prompt


def _request(**overrides: str) -> EstimationRequest:
    values = {
        "projectType": "residential",
        "projectSize": "2000 sq ft",
        "projectLocation": "Austin, TX",
        "specificRequirements": "energy efficient",
        **overrides,
    }
    return EstimationRequest.model_validate(values)


def test_prompt_contains_every_input_verbatim() -> None:
    prompt = build_estimation_prompt(_request())

    assert "Project Type: residential" in prompt
    assert "Project Size: 2000 sq ft square feet" in prompt
    assert "Project Location: Austin, TX" in prompt
    assert "Specific Requirements: energy efficient" in prompt


def test_prompt_sets_the_estimator_role() -> None:
    prompt = build_estimation_prompt(_request())

    assert prompt.startswith("You are an expert construction project manager.")
    assert "estimate the materials needed for the project." in prompt
    assert prompt.rstrip().endswith(
        "Provide a detailed estimation of the necessary materials."
    )


def test_braces_in_user_input_are_kept_literally() -> None:
    prompt = build_estimation_prompt(_request(specificRequirements="use {steel} beams"))

    assert "Specific Requirements: use {steel} beams" in prompt
