"""
Tests for the pipeline stage catalogue.
"""

from sitegen.stages import COMPLETE_STEP, INITIAL_PROGRESS, STAGES, get_stage


class TestStages:
    def test_ranges_are_contiguous(self):
        assert STAGES[0].start == 0
        assert STAGES[-1].end == 100
        for previous, current in zip(STAGES, STAGES[1:]):
            assert previous.end == current.start
            assert current.start < current.end

    def test_lookup(self):
        stage = get_stage("image_generation")
        assert (stage.start, stage.end) == (35, 60)
        assert stage.label == "Generating images..."

    def test_unknown_and_missing_steps(self):
        assert get_stage("translation") is None
        assert get_stage(None) is None

    def test_constants(self):
        assert get_stage(COMPLETE_STEP).end == 100
        assert INITIAL_PROGRESS == 10
