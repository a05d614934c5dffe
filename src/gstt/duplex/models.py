"""Transcription frames sent by the download endpoint."""

from pydantic import BaseModel, ConfigDict


class Alternative(BaseModel):
    """One candidate transcript."""

    model_config = ConfigDict(frozen=True)

    transcript: str = ""
    confidence: float = 0.0


class ResultGroup(BaseModel):
    """Alternatives for one utterance, final or interim."""

    model_config = ConfigDict(frozen=True)

    alternative: list[Alternative] = []
    final: bool = False


class TranscriptionFrame(BaseModel):
    """One JSON object decoded from the download stream.

    An interim frame (``final=False``) may be superseded by a later frame
    carrying the same ``result_index``.
    """

    model_config = ConfigDict(frozen=True)

    result_index: int = 0
    result: list[ResultGroup] = []

    @property
    def is_final(self) -> bool:
        """True if any result group in this frame is final."""
        return any(group.final for group in self.result)

    def final_transcripts(self) -> list[str]:
        """Return the trimmed, non-empty transcripts of the final groups."""
        return [
            alt.transcript.strip()
            for group in self.result
            if group.final
            for alt in group.alternative
            if alt.transcript.strip()
        ]

    def interim_transcripts(self) -> list[str]:
        """Return the trimmed, non-empty transcripts of the interim groups."""
        return [
            alt.transcript.strip()
            for group in self.result
            if not group.final
            for alt in group.alternative
            if alt.transcript.strip()
        ]
