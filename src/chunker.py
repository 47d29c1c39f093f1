from dataclasses import dataclass


@dataclass(frozen=True)
class TextChunk:
    index: int
    text: str
    max_len: int


def chunk_text(text: str, max_len: int) -> list[TextChunk]:
    """
    Splits text into fixed-stride chunks of at most max_len characters.

    Joining the chunks' text in order gives back the original string, and an
    empty string produces no chunks at all.
    """
    if max_len < 1:
        raise ValueError(f"max_len must be at least 1, got {max_len}")

    return [
        TextChunk(index=i, text=text[start : start + max_len], max_len=max_len)
        for i, start in enumerate(range(0, len(text), max_len))
    ]
