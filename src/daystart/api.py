"""Flask trigger surface.

POST on a job route runs the job once. GET on any route returns the health
report. Every job response carries the run outcome:

    200  fully succeeded
    207  partially succeeded (some blocks failed)
    500  failed to run at all
"""

import logging
import time
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from . import jobs
from .blob_storage import BlobStorage
from .config import PipelineConfig, load_config
from .content_store import ContentStore
from .errors import PipelineError
from .health import CRITICAL, pipeline_health
from .models import to_timestamp, utc_now
from .results import RunOutcome, SweepResult
from .script_writer import ClaudeScriptWriter
from .voice_synth import OpenAITTSClient

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[PipelineConfig] = None,
    store: Optional[ContentStore] = None,
    storage: Optional[BlobStorage] = None,
    script_writer: Optional[ClaudeScriptWriter] = None,
    tts_client: Optional[OpenAITTSClient] = None,
    clock: Callable[[], datetime] = utc_now,
    sleep: Callable[[float], None] = time.sleep,
) -> Flask:
    """Build the trigger app.

    Args:
        config: Pipeline configuration (default: loaded from the environment)
        store: Shared content store; when omitted each request opens its own
        storage: Blob storage (default: built from config)
        script_writer: LLM client (default: built from config)
        tts_client: TTS client (default: built from config)
        clock: Time source
        sleep: Backoff sleep function

    Returns:
        Configured Flask app
    """
    config = config or load_config()
    app = Flask(__name__)
    CORS(app)

    @contextmanager
    def open_store() -> Iterator[ContentStore]:
        if store is not None:
            yield store
            return
        request_store = ContentStore(config.paths.db_path, clock=clock)
        try:
            request_store.initialize()
            yield request_store
        finally:
            request_store.close()

    def run_job(name: str, job: Callable[[ContentStore], SweepResult]):
        try:
            with open_store() as job_store:
                result = job(job_store)
        except (PipelineError, ValueError) as e:
            logger.error(f"{name} failed to run: {e}")
            return jsonify({
                "success": False,
                "outcome": RunOutcome.FAILED.value,
                "function": name,
                "error": str(e),
                "timestamp": to_timestamp(clock()),
            }), RunOutcome.FAILED.http_status

        body = result.to_dict()
        body["timestamp"] = to_timestamp(clock())
        logger.info(f"{name} finished: {result.outcome.value} {result.counts}")
        return jsonify(body), result.outcome.http_status

    def health_response():
        try:
            with open_store() as health_store:
                report = pipeline_health(health_store, config, clock=clock)
        except PipelineError as e:
            return jsonify({
                "overall_status": CRITICAL,
                "error": str(e),
                "timestamp": to_timestamp(clock()),
            }), 503
        status_code = 503 if report.overall_status == CRITICAL else 200
        return jsonify(report.to_dict()), status_code

    @app.route("/health", methods=["GET"])
    def health():
        return health_response()

    @app.route("/cleanup-stuck-content", methods=["GET", "POST"])
    def cleanup_stuck_content():
        if request.method == "GET":
            return health_response()
        return run_job(
            "cleanup-stuck-content",
            lambda s: jobs.cleanup_stuck_content(config, s, clock=clock),
        )

    @app.route("/expiration-clean-up", methods=["GET", "POST"])
    def expiration_clean_up():
        if request.method == "GET":
            return health_response()
        return run_job(
            "expiration-clean-up",
            lambda s: jobs.expire_content(config, s, storage=storage, clock=clock),
        )

    @app.route("/generate-script", methods=["GET", "POST"])
    def generate_script():
        if request.method == "GET":
            return health_response()
        return run_job(
            "generate-script",
            lambda s: jobs.generate_scripts(config, s, writer=script_writer, sleep=sleep, clock=clock),
        )

    @app.route("/generate-audio", methods=["GET", "POST"])
    def generate_audio():
        if request.method == "GET":
            return health_response()
        return run_job(
            "generate-audio",
            lambda s: jobs.generate_audio(
                config, s, storage=storage, tts=tts_client, sleep=sleep, clock=clock
            ),
        )

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({
            "success": False,
            "error": f"Method {request.method} not allowed. Use POST.",
        }), 405

    return app
