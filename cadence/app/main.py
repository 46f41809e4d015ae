# stdlib imports
import argparse
import logging
import signal
import sys
from typing import Optional

# library imports
from PySide6.QtCore import QCoreApplication, QTimer

# local imports
from cadence import __version__
from cadence.app.Interactions import Interactions
from cadence.backend.api import MusicApiClient
from cadence.backend.search import searchProviderFor
from cadence.integrations.mediasession import MediaSessionBridge, defaultPublisher
from cadence.misc import cleanup
from cadence.misc.enumerations.Playback import SessionState
from cadence.misc.settings import Settings, recoveryPolicy
from cadence.network import NetworkManager
from cadence.playback.controller import PlaybackController
from cadence.playback.loader import BackendLoader
from cadence.universal import install_json_logging
from cadence.workers import bgworker


def parseArgs(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="cadence", description="Cadence music player")
    parser.add_argument("query", nargs="*", help="search and play the first result")
    parser.add_argument("--backend", choices=["mpv", "vlc"], help="override the mediaPlayerBackend setting")
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    parser.add_argument("--json-logs", action="store_true", help="log one JSON object per line")
    return parser.parse_args(argv)


def playFirstResult(interactions: Interactions) -> None:
    """Plays the first search result once the handle is ready. Starting from the command line is the user gesture."""
    session = interactions.session

    def onResults():
        if interactions.searchModel.rowCount() == 0:
            logging.getLogger("Main").warning("Nothing found")
            return
        interactions.searchModel.modelReset.disconnect(onResults)
        interactions.playSearchResult(0)

    def onState(state: int):
        if state == SessionState.READY and not session.userStartedPlayback:
            session.stateChanged.disconnect(onState)
            interactions.transport.startUserPlayback()

    interactions.searchModel.modelReset.connect(onResults)
    session.stateChanged.connect(onState)


def main(argv: Optional[list[str]] = None) -> int:
    args = parseArgs(argv)
    install_json_logging(logging.DEBUG if args.verbose else logging.INFO, json_output=args.json_logs)
    logger = logging.getLogger("Main")

    app = QCoreApplication(sys.argv[:1])
    app.setApplicationName("Cadence")
    app.setApplicationVersion(__version__)
    app.aboutToQuit.connect(cleanup.runCleanup)

    settings = Settings.instance()
    backendName = args.backend or settings.get("mediaPlayerBackend")

    NetworkManager.get_instance().set_timeout(settings.get("requestTimeout"))
    api = MusicApiClient(settings.get("apiUrl"))

    loader = BackendLoader.get_instance(backendName)
    loader.failed.connect(lambda name, message: (logger.error("Player backend %s failed to load: %s", name, message), app.exit(1)))
    loader.load(bgworker())

    controller = PlaybackController(
        loader,
        policy=recoveryPolicy(settings),
        api=api,
        pollIntervalMs=settings.get("pollIntervalMs"),
    )
    interactions = Interactions(controller, searchProviderFor(settings.get("searchProvider"), api), api)
    interactions.recoveryFailed.connect(lambda: logger.error("Playback could not be recovered, press play to retry"))

    publisher = defaultPublisher()
    bridge = None
    if publisher is not None:
        bridge = MediaSessionBridge(controller.session, controller.transport, controller.tracker, publisher)

    if args.query:
        playFirstResult(interactions)
        interactions.search(" ".join(args.query))

    signal.signal(signal.SIGINT, lambda *_: app.quit())
    # let the interpreter run its signal handlers while Qt owns the loop
    heartbeat = QTimer()
    heartbeat.timeout.connect(lambda: None)
    heartbeat.start(250)

    logger.info("Cadence %s using %s", __version__, backendName)
    code = app.exec()
    del bridge
    return code


if __name__ == "__main__":
    print("Please use run.py to run this application, but we'll try anyway:")
    sys.exit(main())
