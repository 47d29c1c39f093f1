import logging
import os
from dataclasses import dataclass
from functools import lru_cache

import config
from chunker import TextChunk, chunk_text
from llm_providers import LLMProvider
from reducer import MapPrompt, ReducePrompt, ReductionResult, reduce_chunks
from result_cache import ArtifactBundle, ResultCache
from transcripts import SUMMARY_FORMATS, TIMECODE_FORMATS, SubtitleClient, Transcript
from url_normalizer import normalize

logger = logging.getLogger(__name__)

PROMPTS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "prompts")


@lru_cache(maxsize=None)
def read_prompt(filename: str) -> str:
    """Helper function to read a prompt file."""
    filepath = os.path.join(PROMPTS_DIR, f"{filename}.md")
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"Prompt file not found: {filepath}")
    with open(filepath, "r", encoding="utf-8") as f:
        return f.read()


def render_prompt(filename: str, **values) -> str:
    prompt = read_prompt(filename)
    for key, value in values.items():
        prompt = prompt.replace("{{" + key + "}}", str(value))
    return prompt


def _map_prompt(template: str, label: str) -> MapPrompt:
    def build(chunk: TextChunk, total: int) -> list[dict]:
        return [
            {
                "role": "system",
                "content": render_prompt(template, part=chunk.index + 1, total=total),
            },
            {"role": "user", "content": f"{label}:\n\n```\n{chunk.text}\n```"},
        ]

    return build


def _reduce_prompt(template: str) -> ReducePrompt:
    def build(partials: list[str]) -> list[dict]:
        parts = "\n\n".join(
            f"<PART {i}>\n{partial}\n</PART {i}>" for i, partial in enumerate(partials, 1)
        )
        return [
            {"role": "system", "content": read_prompt(template)},
            {"role": "user", "content": parts},
        ]

    return build


@dataclass(frozen=True)
class PipelineVariant:
    """What a pipeline run produces: formats to fetch, prompts, and fallback artifact."""

    name: str
    formats: tuple
    map_prompt: MapPrompt
    reduce_prompt: ReducePrompt
    placeholder: str


SUMMARY = PipelineVariant(
    name="summary",
    formats=SUMMARY_FORMATS,
    map_prompt=_map_prompt("summary_map", "Transcript part"),
    reduce_prompt=_reduce_prompt("summary_reduce"),
    placeholder="Could not produce a summary for this video.",
)

TIMESTAMPS = PipelineVariant(
    name="timestamps",
    formats=TIMECODE_FORMATS,
    map_prompt=_map_prompt("timestamps_map", "Subtitles part"),
    reduce_prompt=_reduce_prompt("timestamps_reduce"),
    placeholder="Could not produce timestamps for this video.",
)


@dataclass
class PipelineOutcome:
    video_id: str
    transcript: Transcript
    reduction: ReductionResult


async def run_pipeline(
    raw_url,
    variant: PipelineVariant,
    subtitle_client: SubtitleClient,
    model_client: LLMProvider,
    result_cache: ResultCache,
    chunk_max_chars: int = config.CHUNK_MAX_CHARS,
    max_concurrency: int = config.MAP_MAX_CONCURRENCY,
) -> PipelineOutcome:
    """
    normalize -> fetch subtitles -> chunk -> map/reduce -> cache.

    Retrieval errors (InvalidUrl, MissingVideoId, NoTrackFound,
    FormatUnavailable, UpstreamError) propagate unchanged. Model failures
    never do; they show up as reduction.ok == False, in which case nothing
    is cached.
    """
    video_id = normalize(raw_url)
    logger.info(f"Running {variant.name} pipeline for {video_id}")

    transcript = await subtitle_client.fetch_transcript(video_id, variant.formats)
    chunks = chunk_text(transcript.text, chunk_max_chars)
    logger.info(
        f"Split {len(transcript.text)} chars of {transcript.format} text for {video_id} "
        f"into {len(chunks)} chunks of at most {chunk_max_chars}"
    )

    reduction = await reduce_chunks(
        chunks,
        variant.map_prompt,
        variant.reduce_prompt,
        model_client,
        placeholder=variant.placeholder,
        max_concurrency=max_concurrency,
    )

    if reduction.ok:
        result_cache.put(
            video_id,
            ArtifactBundle(
                source_text=transcript.text,
                final_artifact=reduction.artifact,
                metadata=transcript.meta,
            ),
        )
    else:
        logger.error(f"{variant.name} pipeline for {video_id} finished without a result")

    return PipelineOutcome(video_id=video_id, transcript=transcript, reduction=reduction)
