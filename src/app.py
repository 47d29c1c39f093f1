import logging
import sys
from typing import Optional

from quart import Blueprint, Quart, Response, current_app, jsonify, request
from quart_cors import cors

import config
from errors import BadRequest, ProxyError, ReductionError
from llm_providers import LLMProvider, get_llm_provider
from pipeline import SUMMARY, TIMESTAMPS, PipelineOutcome, PipelineVariant, render_prompt, run_pipeline
from result_cache import ResultCache
from transcripts import SubtitleClient
from url_normalizer import is_valid_video_id
from youtube_data import YouTubeDataClient, summarize_video

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s:%(lineno)d - %(message)s"


handler = logging.StreamHandler(sys.stdout)
handler.setFormatter(logging.Formatter(LOG_FORMAT))


def configure_logging(level: str = config.LOG_LEVEL) -> None:
    root = logging.getLogger()
    root.setLevel(level)
    if handler not in root.handlers:
        root.addHandler(handler)


bp = Blueprint("proxy", __name__)


def error_response(error: ProxyError, **extra):
    return jsonify({**extra, "error": error.message}), error.status_code


async def _read_json() -> dict:
    data = await request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        raise BadRequest("Invalid JSON payload")
    return data


async def _run_variant(variant: PipelineVariant) -> PipelineOutcome:
    data = await _read_json()
    video_url = data.get("url")
    if not video_url:
        raise BadRequest("URL parameter is required")

    return await run_pipeline(
        video_url,
        variant,
        subtitle_client=current_app.config["SUBTITLE_CLIENT"],
        model_client=current_app.config["LLM_PROVIDER"],
        result_cache=current_app.config["RESULT_CACHE"],
        chunk_max_chars=current_app.config["CHUNK_MAX_CHARS"],
        max_concurrency=current_app.config["MAP_MAX_CONCURRENCY"],
    )


@bp.route("/health")
async def health():
    return jsonify({"status": "ok"})


@bp.route("/srt-summary", methods=["POST"])
async def srt_summary():
    try:
        outcome = await _run_variant(SUMMARY)
    except ProxyError as e:
        logger.warning(f"/srt-summary failed: {e.message}")
        return error_response(e)
    except Exception as e:
        logger.exception(f"Unexpected error in /srt-summary: {str(e)}")
        return jsonify({"error": f"An error occurred: {str(e)}"}), 500

    track = outcome.transcript.track
    body = {
        **outcome.transcript.meta,
        "summary": outcome.reduction.artifact,
        "srtUrl": track.url_for("srt"),
        "txtUrl": track.url_for("txt"),
        "vttUrl": track.url_for("vtt"),
    }
    if not outcome.reduction.ok:
        # Metadata is still worth returning alongside the failure.
        return error_response(ReductionError(outcome.reduction.error), **body)
    return jsonify(body)


@bp.route("/srt-timestamps", methods=["POST"])
async def srt_timestamps():
    try:
        outcome = await _run_variant(TIMESTAMPS)
    except ProxyError as e:
        logger.warning(f"/srt-timestamps failed: {e.message}")
        return error_response(e)
    except Exception as e:
        logger.exception(f"Unexpected error in /srt-timestamps: {str(e)}")
        return jsonify({"error": f"An error occurred: {str(e)}"}), 500

    body = {
        "timestamps": outcome.reduction.artifact,
        "srtUrl": outcome.transcript.track.url_for("srt"),
    }
    if not outcome.reduction.ok:
        return error_response(ReductionError(outcome.reduction.error), **body)
    return jsonify(body)


@bp.route("/download-text")
async def download_text():
    video_id = request.args.get("videoId")
    if not video_id:
        return jsonify({"error": "videoId is required"}), 400
    if not is_valid_video_id(video_id):
        return jsonify({"error": "Invalid videoId"}), 400

    try:
        bundle = current_app.config["RESULT_CACHE"].get(video_id)
    except ProxyError as e:
        return error_response(e)

    return Response(
        bundle.source_text,
        mimetype="text/plain",
        headers={"Content-Disposition": f'attachment; filename="{video_id}.txt"'},
    )


@bp.route("/", methods=["POST"])
async def chat_proxy():
    """Plain chat-completion proxy: {messages} in, chat-completion shaped body out."""
    try:
        data = await _read_json()
        messages = data.get("messages")
        if not messages or not isinstance(messages, list):
            raise BadRequest("messages must be a non-empty list")

        llm_provider = current_app.config["LLM_PROVIDER"]
        content = await llm_provider.complete(messages)
    except ProxyError as e:
        logger.warning(f"Chat proxy failed: {e.message}")
        return error_response(e)
    except Exception as e:
        logger.exception(f"Unexpected error in chat proxy: {str(e)}")
        return jsonify({"error": str(e)}), 500

    return jsonify(
        {
            "object": "chat.completion",
            "choices": [
                {
                    "index": 0,
                    "message": {"role": "assistant", "content": content},
                    "finish_reason": "stop",
                }
            ],
        }
    )


@bp.route("/analyze-video")
async def analyze_video():
    video_id = request.args.get("videoId")
    if not video_id:
        return jsonify({"error": "videoId is required"}), 400

    try:
        item = await current_app.config["YOUTUBE_CLIENT"].get_video(video_id)
    except ProxyError as e:
        logger.warning(f"/analyze-video failed for {video_id}: {e.message}")
        return error_response(e)
    except Exception as e:
        logger.exception(f"Unexpected error in /analyze-video: {str(e)}")
        return jsonify({"error": "Failed to analyze video"}), 500

    return jsonify(summarize_video(item))


@bp.route("/seo-optimize")
async def seo_optimize():
    video_id = request.args.get("videoId")
    if not video_id:
        return jsonify({"error": "videoId is required"}), 400

    try:
        video = summarize_video(await current_app.config["YOUTUBE_CLIENT"].get_video(video_id))
        prompt = render_prompt(
            "seo", title=video["title"] or "", description=video["description"] or ""
        )
        optimized = await current_app.config["LLM_PROVIDER"].complete(
            [{"role": "user", "content": prompt}]
        )
        if not optimized or not optimized.strip():
            raise ReductionError("Language model returned an empty result")
    except ProxyError as e:
        logger.warning(f"/seo-optimize failed for {video_id}: {e.message}")
        return error_response(e)
    except Exception as e:
        logger.exception(f"Unexpected error in /seo-optimize: {str(e)}")
        return jsonify({"error": "Failed to optimize video"}), 500

    return jsonify(
        {
            "originalTitle": video["title"],
            "originalDescription": video["description"],
            "optimizedText": optimized.strip(),
        }
    )


@bp.route("/youtube-trends")
async def youtube_trends():
    query = request.args.get("query")
    if not query:
        return jsonify({"error": "query is required"}), 400

    try:
        items = await current_app.config["YOUTUBE_CLIENT"].search_recent(query)
    except ProxyError as e:
        logger.warning(f"/youtube-trends failed for {query!r}: {e.message}")
        return error_response(e)
    except Exception as e:
        logger.exception(f"Unexpected error in /youtube-trends: {str(e)}")
        return jsonify({"error": "YouTube API request failed"}), 500

    return jsonify({"items": items})


def create_app(
    llm_provider: Optional[LLMProvider] = None,
    subtitle_client: Optional[SubtitleClient] = None,
    result_cache: Optional[ResultCache] = None,
    youtube_client: Optional[YouTubeDataClient] = None,
    chunk_max_chars: int = config.CHUNK_MAX_CHARS,
    map_max_concurrency: int = config.MAP_MAX_CONCURRENCY,
) -> Quart:
    configure_logging()

    app = Quart(__name__)
    app.config.update(
        LLM_PROVIDER=llm_provider or get_llm_provider(),
        SUBTITLE_CLIENT=subtitle_client or SubtitleClient(),
        RESULT_CACHE=result_cache if result_cache is not None else ResultCache(),
        YOUTUBE_CLIENT=youtube_client or YouTubeDataClient(),
        CHUNK_MAX_CHARS=chunk_max_chars,
        MAP_MAX_CONCURRENCY=map_max_concurrency,
    )
    app.register_blueprint(bp)

    origins = [origin.strip() for origin in config.CORS_ORIGINS.split(",") if origin.strip()]
    return cors(app, allow_origin=origins if len(origins) > 1 else (origins or ["*"])[0])


if __name__ == "__main__":
    logger.info("Starting Quart app...")
    create_app().run(host="0.0.0.0", port=config.PORT)
