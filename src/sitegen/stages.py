"""
Catalogue of server pipeline stages and their display-progress ranges.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class PipelineStage:
    """One named phase of the server pipeline."""

    name: str
    start: float
    end: float
    label: str


STAGES: tuple[PipelineStage, ...] = (
    PipelineStage("business_gathering", 0, 10, "Understanding your business..."),
    PipelineStage("planning", 10, 25, "Planning website structure..."),
    PipelineStage("image_description", 25, 35, "Creating image descriptions..."),
    PipelineStage("image_generation", 35, 60, "Generating images..."),
    PipelineStage("html_generation", 60, 80, "Creating HTML & CSS..."),
    PipelineStage("html_validation", 80, 90, "Validating pages..."),
    PipelineStage("file_storage", 90, 95, "Saving website..."),
    PipelineStage("complete", 95, 100, "Website generation complete!"),
)

_STAGES_BY_NAME = {stage.name: stage for stage in STAGES}

COMPLETE_STEP = "complete"

# Displayed as soon as a new job is submitted, before the first event arrives
INITIAL_PROGRESS = STAGES[0].end


def get_stage(step: str | None) -> PipelineStage | None:
    """Look up a stage by its step name; unknown steps return None."""
    if step is None:
        return None
    return _STAGES_BY_NAME.get(step)
