import sys
import asyncio
import logging
from anisync.config import SyncConfig
from anisync.core.errors import AniSyncError
from anisync.utils.logger import setup_logging
from anisync.cli.watch import parse_args, run_watch

logger = logging.getLogger("anisync")

USAGE = "Usage: anisync <anilist_id> [--dub] [--provider-id ID] [--episode N] | --continue"

def main(argv=None):
    config = SyncConfig.from_env()
    setup_logging(config.log_level, log_file=config.log_file)

    try:
        show_id, continue_last, provider_id, episode = parse_args(sys.argv[1:] if argv is None else argv, config)
    except ValueError as e:
        logger.error(f"Bad arguments: {e}")
        print(USAGE)
        return 1
    if show_id is None and not continue_last:
        print(USAGE)
        return 1

    try:
        asyncio.run(run_watch(show_id, config, continue_last, provider_id, episode))
    except AniSyncError as e:
        logger.error(f"{type(e).__name__}: {e}")
        print(f"Error: {e}")
        return 1
    return 0

if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        pass
