"""Entry point for the ADIF log uploader."""

import logging
import signal
import threading

from adif_uploader.config import Config, load_config
from adif_uploader.errors import UploaderError
from adif_uploader.logging_config import setup_logging
from adif_uploader.reader import LogReader
from adif_uploader.uploader import QsoUploader, build_api_url, read_api_key
from adif_uploader.watcher import WatchLoop

logger = logging.getLogger(__name__)


def run(config: Config, shutdown_event: threading.Event, observer=None, session=None):
    """Set up reader, uploader and watcher, then block in the watch loop."""
    url = build_api_url(config.base_url)
    key = read_api_key(config.key_file)

    with LogReader.open(
        config.log_file, chunk_size=config.chunk_size, encoding=config.encoding
    ) as reader:
        uploader = QsoUploader(
            url,
            key,
            profile_id=config.profile_id,
            session=session,
            method=config.method,
            timeout=config.timeout,
            user_agent=config.user_agent,
        )
        logger.info("Uploading %s to %s (profile=%s, method=%s)",
                    config.log_file, url, config.profile_id or "-", config.method)

        loop = WatchLoop(config.log_file, reader, uploader, observer=observer,
                         shutdown_event=shutdown_event)
        try:
            loop.run()
        finally:
            stats = uploader.stats.snapshot()
            logger.info("Stats: %d bytes uploaded in %d chunks, %d bytes pending",
                        stats["bytes"], stats["chunks"], reader.pending)
            uploader.close()


def main(argv: list[str] | None = None, observer=None, session=None) -> int:
    try:
        config = load_config(argv)
    except UploaderError as e:
        setup_logging()
        logger.critical("%s", e)
        return e.exit_code

    setup_logging(config.log_level)
    shutdown_event = threading.Event()

    def handle_signal(signum, frame):
        logger.info("Received signal %d, shutting down...", signum)
        shutdown_event.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        run(config, shutdown_event, observer=observer, session=session)
    except UploaderError as e:
        logger.critical("%s", e)
        return e.exit_code
    return 0
