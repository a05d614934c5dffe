"""Unit tests for transcription frame models."""

from gstt.duplex.models import Alternative, ResultGroup, TranscriptionFrame


class TestTranscriptionFrame:
    """Tests for TranscriptionFrame helpers."""

    def test_defaults(self) -> None:
        """Test that an empty object is a valid frame."""
        frame = TranscriptionFrame.model_validate({})
        assert frame.result_index == 0
        assert frame.result == []
        assert not frame.is_final

    def test_final_transcripts_trimmed(self) -> None:
        """Test that final alternatives are trimmed and empty ones skipped."""
        frame = TranscriptionFrame(
            result=[
                ResultGroup(
                    alternative=[
                        Alternative(transcript="  hello there "),
                        Alternative(transcript="   "),
                        Alternative(transcript="hello their"),
                    ],
                    final=True,
                ),
                ResultGroup(alternative=[Alternative(transcript="and")], final=False),
            ]
        )
        assert frame.is_final
        assert frame.final_transcripts() == ["hello there", "hello their"]
        assert frame.interim_transcripts() == ["and"]

    def test_interim_only(self) -> None:
        """Test a frame without final groups."""
        frame = TranscriptionFrame(
            result=[ResultGroup(alternative=[Alternative(transcript="he")])]
        )
        assert not frame.is_final
        assert frame.final_transcripts() == []
        assert frame.interim_transcripts() == ["he"]
