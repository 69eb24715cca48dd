import asyncio
import logging
import time
from typing import Dict, Set

import Config
from Capture import Capture, CameraAccessError
from GestureEngine import GestureDispatcher
from HandTracker import HandTracker, PerceptionUnavailableError, TrackerStatus
from Scene import TreeScene
from Server import Server

logger = logging.getLogger("gesture_tree")


def now_ms() -> int:
    return int(time.time() * 1000)


async def perception_loop(capture: Capture, tracker: HandTracker, dispatcher: GestureDispatcher, scene: TreeScene) -> None:
    """
    Camera -> MediaPipe -> gesture events.

    Reading the camera blocks, so it runs in a worker thread; everything after
    the read happens on the event loop.
    """
    while not scene.disposed:
        ret, frame = await asyncio.to_thread(capture.read)
        if not ret or frame is None:
            logger.warning("Failed to grab frame, stopping perception")
            break

        tracker.detect_async(frame, now_ms())

        # MediaPipe answers asynchronously; only classify results we have not seen yet
        result = tracker.poll_result()
        if result is not None:
            dispatcher.process(HandTracker.first_hand(result))


async def animation_loop(scene: TreeScene, server: Server, background_tasks: Set[asyncio.Task]) -> None:
    """
    Fixed-step simulation. Each tick advances simulated time by TICK_SECONDS no
    matter how late it runs; the sleep only paces it against the wall clock.
    """
    loop = asyncio.get_running_loop()
    next_tick = loop.time()

    while not scene.disposed:
        scene.tick()
        frame = scene.snapshot()

        if frame is not None and server.clients:
            ts_ms = now_ms()
            payloads: Dict[bool, str] = {False: server.construct_payload(frame, ts_ms)}
            if server.needs_full_frame:
                payloads[True] = server.construct_payload(frame, ts_ms, full=True)
            server.broadcast(payloads, background_tasks)

        next_tick += Config.TICK_SECONDS
        await asyncio.sleep(max(0.0, next_tick - loop.time()))


async def main() -> None:
    """
    Entry point for the gesture tree node.

    Architecture:
        1. Capture: grabs webcam frames (blocking, off-loaded to a thread).
        2. Detection: MediaPipe hand landmarker (asynchronous, callback based).
        3. Gestures: classify + edge-triggered dispatch into the scene's mailbox.
        4. Animation: fixed-step tick of particles, snow and fireworks.
        5. Broadcast: render buffers to connected WebSocket renderers.
    """
    scene = TreeScene()
    dispatcher = GestureDispatcher(
        on_one_finger=scene.post,
        on_two_fingers=scene.post,
        on_three_fingers=scene.post,
        on_pinch=scene.post,
        on_no_gesture=scene.post,
    )
    tracker = HandTracker()
    server = Server()
    capture = None

    # Keep track of background tasks (sends) to prevent garbage collection
    background_tasks: Set[asyncio.Task] = set()

    try:
        async with server.serve(server.register_client, Config.HOST, Config.PORT):
            logger.info("Gesture tree node running on ws://%s:%d", Config.HOST, Config.PORT)
            server.broadcast_status(server.construct_status_payload(TrackerStatus.LOADING.value, None, now_ms()),
                                    background_tasks)
            try:
                # Model loading and camera open block
                await asyncio.to_thread(tracker.start)
                capture = await asyncio.to_thread(Capture)
            except (PerceptionUnavailableError, CameraAccessError) as e:
                # Terminal: the user has to fix the setup and restart
                logger.critical("%s", e)
                server.broadcast_status(server.construct_status_payload(TrackerStatus.ERROR.value, str(e), now_ms()),
                                        background_tasks)
                await asyncio.gather(*background_tasks, return_exceptions=True)
                return

            server.broadcast_status(server.construct_status_payload(tracker.status.value, None, now_ms()),
                                    background_tasks)

            perception = asyncio.create_task(perception_loop(capture, tracker, dispatcher, scene))
            animation = asyncio.create_task(animation_loop(scene, server, background_tasks))
            try:
                # Losing the camera ends the session
                await perception
            finally:
                animation.cancel()
                await asyncio.gather(animation, return_exceptions=True)

    except KeyboardInterrupt:
        logger.info("Stopping gesture tree node...")
    finally:
        scene.dispose()
        tracker.close()
        if capture is not None:
            capture.release()


def run() -> None:
    logging.basicConfig(level=Config.LOG_LEVEL, format=Config.LOG_FORMAT)
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
