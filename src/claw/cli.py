# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Process entry point for the claw router.

Loads the configuration, starts the listeners and targets and feeds every
key event to the dispatcher until interrupted or until a listener fails
fatally.
"""

import asyncio
import logging
import signal
import sys
from typing import Optional

from .config import Config, load_config
from .const import DEFAULT_CONFIG_PATH
from .dispatcher import Dispatcher
from .exceptions import ConfigurationError
from .listeners.registry import ListenerRegistry, default_listener_registry
from .stream import CommandStream
from .targets.registry import TargetRegistry, default_target_registry

logger = logging.getLogger(__name__)


async def consume(stream: CommandStream, dispatcher: Dispatcher) -> None:
    """Dispatch events until the stream ends."""
    async for event in stream:
        if stream.has_error():
            logger.warning(f"An error occurred somewhere: {stream.get_error()}")
            stream.clear_error()
        logger.debug(
            f"repeat: {event.repeat:2d} - key: {event.key} - source: {event.source}"
        )
        await dispatcher.dispatch(event)


async def run(
    config: Config,
    *,
    listener_registry: Optional[ListenerRegistry] = None,
    target_registry: Optional[TargetRegistry] = None,
) -> int:
    """Run the router.

    Returns:
        0 when stopped by a signal, 1 when a listener failed fatally.

    Raises:
        ConfigurationError: If a listener or target cannot be created.
    """
    listener_registry = listener_registry or default_listener_registry()
    target_registry = target_registry or default_target_registry()

    dispatcher = Dispatcher(target_registry, config.routes)
    await dispatcher.setup(config.targets)
    try:
        async with CommandStream() as stream:
            for name, cfg in config.listeners.items():
                logger.info(f"Starting listener {name} ({cfg.type})")
                stream.add_listener(listener_registry.create(cfg.type, cfg.params))

            consumer = asyncio.create_task(consume(stream, dispatcher))
            interrupted = False

            def on_signal():
                nonlocal interrupted
                interrupted = True
                consumer.cancel()

            loop = asyncio.get_running_loop()
            signals = (signal.SIGINT, signal.SIGTERM)
            for sig in signals:
                try:
                    loop.add_signal_handler(sig, on_signal)
                except NotImplementedError:
                    # Not supported on this platform; KeyboardInterrupt still works
                    pass

            try:
                await consumer
            except asyncio.CancelledError:
                if not interrupted:
                    raise
                logger.info("Interrupted, shutting down")
            finally:
                for sig in signals:
                    try:
                        loop.remove_signal_handler(sig)
                    except NotImplementedError:
                        pass

            return 1 if stream.fatal else 0
    finally:
        await dispatcher.stop()


def main():
    """CLI entry point for the router."""
    import argparse

    parser = argparse.ArgumentParser(
        description="claw - route remote control key presses to devices"
    )
    parser.add_argument(
        "--config", "-c",
        default=DEFAULT_CONFIG_PATH,
        help=f"Configuration file (default: {DEFAULT_CONFIG_PATH})"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Enable debug logging"
    )
    parser.add_argument(
        "--list-types", "-l",
        action="store_true",
        help="List available listener and target types and exit"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    if args.list_types:
        print("Listener types:")
        for name in default_listener_registry().types:
            print(f"  {name}")
        print("Target types:")
        for name in default_target_registry().types:
            print(f"  {name}")
        return

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        logger.error(str(e))
        sys.exit(2)

    if config.log_level and not args.debug:
        logging.getLogger().setLevel(config.log_level)

    try:
        result = asyncio.run(run(config))
    except ConfigurationError as e:
        logger.error(f"Setup failed: {e}")
        sys.exit(2)
    except KeyboardInterrupt:
        print("\nRouter stopped.")
        result = 0

    sys.exit(result)


if __name__ == "__main__":
    main()
