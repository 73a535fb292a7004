#!/usr/bin/env python3
"""
Compositor Tests

Flattening of layered timelines into the ordered instruction stream:
gap filling of the main tracks, overlay ordering, validation and purity.
"""

import pytest

from core.compositor import (
    Instruction,
    InstructionKind,
    flatten,
    partition,
)
from models import Layer, Timeline, UnknownInstructionKindError


def spans(instructions):
    return [(i.kind.value, i.timeline_offset_ms, i.timeline_end_ms) for i in instructions]


# ============================================================================
# MAIN TRACKS
# ============================================================================

class TestMainTrackGapFill:
    """Main tracks run from 0 to the total duration without holes"""

    def test_main_video_gaps_are_filled(self, gap_timeline):
        result = flatten(gap_timeline)
        video = [i for i in result.instructions if i.kind in (InstructionKind.MAIN_VIDEO, InstructionKind.BLANK_VIDEO)]
        assert spans(video) == [
            ("main-video", 0, 1000),
            ("blank-video", 1000, 1500),
            ("main-video", 1500, 2000),
            ("blank-video", 2000, 2500),
        ]
        assert result.total_duration == 2500
        assert result.valid

    def test_main_audio_comes_first(self, gap_timeline):
        result = flatten(gap_timeline)
        assert result.instructions[0].kind is InstructionKind.MAIN_AUDIO
        assert spans(result.instructions[:1]) == [("main-audio", 0, 2500)]

    def test_main_audio_gaps_are_filled(self, make_unit, make_timeline):
        video = Layer.from_units(make_unit("video", 0, 2000))
        audio = Layer.from_units(make_unit("audio", 500, 500))
        result = flatten(make_timeline(video, audio, main_video=video, main_audio=audio))
        audio_part = [i for i in result.instructions if i.kind in (InstructionKind.MAIN_AUDIO, InstructionKind.BLANK_AUDIO)]
        assert spans(audio_part) == [
            ("blank-audio", 0, 500),
            ("main-audio", 500, 1000),
            ("blank-audio", 1000, 2000),
        ]

    def test_contained_unit_does_not_rewind_fill(self, make_unit, make_timeline):
        long_clip = make_unit("video", 0, 3000)
        short_clip = make_unit("video", 1000, 500)
        video = Layer.from_units(long_clip, short_clip)
        result = flatten(make_timeline(video, main_video=video))
        assert result.total_duration == 3000
        assert spans(result.instructions) == [
            ("main-video", 0, 3000),
            ("main-video", 1000, 1500),
        ]

    def test_main_tracks_tile_total_duration(self, gap_timeline):
        result = flatten(gap_timeline)
        for kinds in (
            (InstructionKind.MAIN_VIDEO, InstructionKind.BLANK_VIDEO),
            (InstructionKind.MAIN_AUDIO, InstructionKind.BLANK_AUDIO),
        ):
            track = [i for i in result.instructions if i.kind in kinds]
            assert track[0].timeline_offset_ms == 0
            assert track[-1].timeline_end_ms == result.total_duration
            for current, following in zip(track, track[1:]):
                assert current.timeline_end_ms == following.timeline_offset_ms

    def test_images_become_main_image(self, make_unit, make_timeline):
        video = Layer.from_units(make_unit("image", 0, 3000))
        result = flatten(make_timeline(video, main_video=video))
        assert spans(result.instructions) == [("main-image", 0, 3000)]
        assert result.instructions[0].trim_start_ms is None
        assert result.instructions[0].position == {"x": 0, "y": 0}

    def test_trim_window_and_placement_are_carried(self, make_unit, make_timeline):
        unit = make_unit("video", 0, 4000)
        unit.resource.duration = 9000
        unit.set_trim(1000, 5000)
        unit.scene.move_to(100, 50)
        unit.scene.scale_to(0.5, 0.5)
        video = Layer.from_units(unit)
        instruction = flatten(make_timeline(video, main_video=video)).instructions[0]
        assert (instruction.trim_start_ms, instruction.trim_end_ms) == (1000, 5000)
        assert instruction.position == {"x": 100, "y": 50}
        assert instruction.scale == {"x": 0.5, "y": 0.5}
        assert instruction.url == unit.resource.url
        assert instruction.unit_id == unit.id
        assert instruction.layer_id == video.id

    def test_layer_mute_propagates(self, gap_timeline):
        gap_timeline.main_audio_layer.mute()
        result = flatten(gap_timeline)
        assert result.instructions[0].muted is True
        main_video = [i for i in result.instructions if i.kind is InstructionKind.MAIN_VIDEO]
        assert all(i.muted is False for i in main_video)

    def test_hidden_main_video_unit_is_blanked(self, make_unit, make_timeline):
        hidden = make_unit("video", 1000, 1000)
        hidden.display = False
        video = Layer.from_units(make_unit("video", 0, 1000), hidden)
        result = flatten(make_timeline(video, main_video=video))
        assert spans(result.instructions) == [
            ("main-video", 0, 1000),
            ("blank-video", 1000, 2000),
        ]

    def test_unsupported_main_video_unit(self, make_unit, make_timeline):
        video = Layer.from_units(make_unit("audio", 0, 1000))
        result = flatten(make_timeline(video, main_video=video))
        assert not result.valid
        assert [d.code for d in result.diagnostics] == ["unsupported-main-video-unit"]
        assert spans(result.instructions) == [("blank-video", 0, 1000)]


# ============================================================================
# OVERLAYS
# ============================================================================

class TestOverlays:
    """Back of the stack is painted first; overlays are anchored, not gap-filled"""

    def test_overlays_are_emitted_back_to_front(self, make_unit, make_timeline):
        front = Layer.from_units(make_unit("image", 200, 300))
        middle = Layer.from_units(make_unit("figure", 0, 500))
        back = Layer.from_units(make_unit("audio", 100, 400))
        video = Layer.from_units(make_unit("video", 0, 1000))
        result = flatten(make_timeline(front, middle, back, video, main_video=video))

        overlays = result.instructions[1:]
        assert [i.kind for i in overlays] == [
            InstructionKind.AUDIO,
            InstructionKind.FIGURE_PICTURE,
            InstructionKind.IMAGE,
        ]
        assert [i.layer_id for i in overlays] == [back.id, middle.id, front.id]

    def test_overlays_are_anchored_at_timeline_offset(self, make_unit, make_timeline):
        overlay = Layer.from_units(make_unit("video", 700, 200))
        video = Layer.from_units(make_unit("video", 0, 1000))
        result = flatten(make_timeline(overlay, video, main_video=video))
        assert spans(result.instructions) == [
            ("main-video", 0, 1000),
            ("video", 700, 900),
        ]

    def test_figure_carries_voice(self, make_unit, make_timeline):
        figure = make_unit("figure", 0, 500)
        overlay = Layer.from_units(figure)
        video = Layer.from_units(make_unit("video", 0, 1000))
        instruction = flatten(make_timeline(overlay, video, main_video=video)).instructions[-1]
        assert instruction.kind is InstructionKind.FIGURE_PICTURE
        assert instruction.url == figure.resource.url
        assert instruction.audio_url == figure.resource.audio.url

    def test_text_and_hidden_layers_are_not_emitted(self, make_unit, make_timeline):
        text = Layer.from_units(make_unit("text", 0, 500))
        hidden = Layer.from_units(make_unit("image", 0, 500))
        hidden.hide()
        video = Layer.from_units(make_unit("video", 0, 1000))
        result = flatten(make_timeline(text, hidden, video, main_video=video))
        assert spans(result.instructions) == [("main-video", 0, 1000)]
        assert result.valid

    def test_overlay_only_timeline(self, make_unit, make_timeline):
        overlay = Layer.from_units(make_unit("image", 100, 100))
        result = flatten(make_timeline(overlay))
        assert result.total_duration == 0
        assert spans(result.instructions) == [("image", 100, 200)]


# ============================================================================
# VALIDATION
# ============================================================================

class TestValidation:

    def test_empty_timeline(self):
        result = flatten(Timeline())
        assert not result.valid
        assert result.instructions == []
        assert [d.code for d in result.diagnostics] == ["empty-composition"]

    def test_configured_but_empty_main_video(self, make_timeline):
        video = Layer(kind="video")
        result = flatten(make_timeline(video, main_video=video))
        assert not result.valid
        assert "empty-main-video-layer" in [d.code for d in result.diagnostics]

    def test_every_figure_without_voice_is_reported(self, make_unit, make_timeline):
        first = make_unit("figure", 0, 500, with_audio=False, name="anna")
        second = make_unit("figure", 600, 300, with_audio=False, name="ben")
        overlay = Layer.from_units(first, second)
        video = Layer.from_units(make_unit("video", 0, 1000))
        result = flatten(make_timeline(overlay, video, main_video=video))

        assert not result.valid
        assert [(d.code, d.unit_id) for d in result.diagnostics] == [
            ("figure-missing-audio", first.id),
            ("figure-missing-audio", second.id),
        ]
        assert "anna" in result.diagnostics[0].message
        assert all(i.kind is not InstructionKind.FIGURE_PICTURE for i in result.instructions)

    def test_dangling_main_layer_is_a_diagnostic(self, make_unit, make_timeline):
        video = Layer.from_units(make_unit("video", 0, 1000))
        timeline = make_timeline(video, main_video=video)
        timeline.main_audio_layer_id = "gone"
        result = flatten(timeline)
        assert not result.valid
        assert result.diagnostics[0].code == "dangling-main-layer"
        assert result.diagnostics[0].layer_id == "gone"
        assert result.total_duration == 1000


# ============================================================================
# PURITY & PARTITION
# ============================================================================

class TestPurityAndPartition:

    def test_flatten_does_not_reorder_units(self, make_unit, make_timeline):
        late = make_unit("video", 1000, 500)
        early = make_unit("video", 0, 1000)
        video = Layer.from_units(late, early)
        timeline = make_timeline(video, main_video=video)
        before = timeline.stringify()

        result = flatten(timeline)
        assert spans(result.instructions) == [("main-video", 0, 1000), ("main-video", 1000, 1500)]
        assert [u.id for u in video] == [late.id, early.id]
        assert timeline.stringify() == before

    def test_flatten_is_repeatable(self, gap_timeline):
        first = [i.to_dict() for i in flatten(gap_timeline).instructions]
        second = [i.to_dict() for i in flatten(gap_timeline).instructions]
        assert first == second

    def test_partition_preserves_order(self, gap_timeline):
        result = flatten(gap_timeline)
        blanks, content = partition(result.instructions)
        assert all(i.is_blank for i in blanks)
        assert not any(i.is_blank for i in content)
        assert len(blanks) + len(content) == len(result.instructions)
        assert content == [i for i in result.instructions if not i.is_blank]
        assert result.content == content
        assert result.blanks == blanks


# ============================================================================
# INSTRUCTION RECORDS
# ============================================================================

class TestInstruction:

    def test_to_dict_omits_unset_fields(self):
        blank = Instruction(kind=InstructionKind.BLANK_AUDIO, timeline_offset_ms=10, duration_ms=5)
        assert blank.to_dict() == {"kind": "blank-audio", "timelineOffsetMs": 10, "durationMs": 5}

    def test_from_dict(self):
        instruction = Instruction.from_dict({
            "kind": "video", "timelineOffsetMs": 100, "durationMs": 50, "url": "a.mp4", "muted": True,
        })
        assert instruction.kind is InstructionKind.VIDEO
        assert instruction.timeline_end_ms == 150
        assert instruction.muted is True

    @pytest.mark.parametrize("kind", ["sticker", None, ""])
    def test_unknown_kind_is_a_hard_error(self, kind):
        with pytest.raises(UnknownInstructionKindError):
            Instruction.from_dict({"kind": kind})
        with pytest.raises(UnknownInstructionKindError):
            Instruction(kind=kind, timeline_offset_ms=0, duration_ms=0)

    def test_exactly_nine_kinds(self):
        assert {k.value for k in InstructionKind} == {
            "main-video", "main-audio", "main-image", "video", "audio", "image",
            "figure-picture", "blank-video", "blank-audio",
        }
