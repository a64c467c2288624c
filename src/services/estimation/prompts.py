"""Prompt template for material estimation."""

from schemas.estimation import EstimationRequest


ESTIMATION_PROMPT_TEMPLATE = """You are an expert construction project manager. \
Based on the project specifications provided, estimate the materials needed for \
the project.

Project Type: {project_type}
Project Size: {project_size} square feet
Project Location: {project_location}
Specific Requirements: {specific_requirements}

Provide a detailed estimation of the necessary materials.
"""


def build_estimation_prompt(request: EstimationRequest) -> str:
    # Values are interpolated as-is; only the template itself is parsed by
    # str.format, so braces in user input are harmless.
    return ESTIMATION_PROMPT_TEMPLATE.format(
        project_type=request.project_type,
        project_size=request.project_size,
        project_location=request.project_location,
        specific_requirements=request.specific_requirements,
    )
