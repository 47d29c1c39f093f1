import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

import config
from chunker import TextChunk
from llm_providers import LLMProvider

logger = logging.getLogger(__name__)

MapPrompt = Callable[[TextChunk, int], list[dict]]
ReducePrompt = Callable[[list[str]], list[dict]]


@dataclass
class ReductionResult:
    artifact: str
    partials: list[str] = field(default_factory=list)
    ok: bool = True
    error: Optional[str] = None


async def map_chunks(
    chunks: list[TextChunk],
    map_prompt: MapPrompt,
    model_client: LLMProvider,
    max_concurrency: int = config.MAP_MAX_CONCURRENCY,
    timeout: Optional[float] = None,
) -> list[str]:
    """
    MAP step: one model call per chunk, fanned out under a semaphore.

    A failed or empty call leaves "" for that chunk instead of aborting.
    The returned list is in chunk order whatever order the calls finish in.
    """
    total = len(chunks)
    semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def map_one(chunk: TextChunk) -> str:
        async with semaphore:
            try:
                partial = await model_client.complete(map_prompt(chunk, total), timeout=timeout)
            except Exception as e:
                logger.warning(f"Map call for chunk {chunk.index + 1}/{total} failed: {e}")
                return ""
        if not partial or not partial.strip():
            logger.warning(f"Map call for chunk {chunk.index + 1}/{total} returned no content")
            return ""
        return partial.strip()

    logger.info(f"MAP step: {total} chunks (max {max_concurrency} concurrent)")
    return list(await asyncio.gather(*(map_one(chunk) for chunk in chunks)))


async def reduce_chunks(
    chunks: list[TextChunk],
    map_prompt: MapPrompt,
    reduce_prompt: ReducePrompt,
    model_client: LLMProvider,
    placeholder: str = "",
    max_concurrency: int = config.MAP_MAX_CONCURRENCY,
    timeout: Optional[float] = None,
) -> ReductionResult:
    """
    Runs the map step over every chunk, then folds the partial results with
    exactly one more model call.

    Never raises for model failures: when the reduce call fails or answers
    with nothing, the result carries ok=False and the placeholder artifact.
    Zero chunks short-circuit without any model call.
    """
    if not chunks:
        logger.info("No chunks to reduce, skipping model calls")
        return ReductionResult(artifact="")

    partials = await map_chunks(chunks, map_prompt, model_client, max_concurrency, timeout)

    logger.info(
        f"REDUCE step: folding {len(partials)} partial results "
        f"({sum(1 for p in partials if not p)} empty)"
    )
    try:
        artifact = await model_client.complete(reduce_prompt(partials), timeout=timeout)
    except Exception as e:
        logger.error(f"Reduce call failed: {e}")
        return ReductionResult(artifact=placeholder, partials=partials, ok=False, error=str(e))

    if not artifact or not artifact.strip():
        logger.error("Reduce call returned no usable content")
        return ReductionResult(
            artifact=placeholder,
            partials=partials,
            ok=False,
            error="Language model returned an empty result",
        )
    return ReductionResult(artifact=artifact.strip(), partials=partials)
