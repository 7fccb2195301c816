import argparse
import os
import sys

from lvm_luks_extend.__version__ import __version__
from lvm_luks_extend.app.orchestrator import ExtensionOrchestrator
from lvm_luks_extend.logging import get_logger, setup_logging
from lvm_luks_extend.services import Services
from lvm_luks_extend.storage.exceptions import PrivilegeError
from lvm_luks_extend.ui.console import Console


def require_root():
    if os.geteuid() != 0:
        raise PrivilegeError()


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Extend LVM on LUKS onto a new or enlarged disk"
    )
    parser.add_argument("-d", "--debug", action="store_true", help="Show commands and answers on the console")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    args = parser.parse_args(argv)

    log_path = setup_logging(debug=args.debug)
    log = get_logger(source="main")
    log.debug(f"lvm-luks-extend {__version__} starting, transcript at {log_path}")

    console = Console()
    try:
        require_root()
    except PrivilegeError as error:
        console.error(str(error))
        return 1

    orchestrator = ExtensionOrchestrator(console, Services.default(), log_path=log_path)
    try:
        return orchestrator.run()
    except KeyboardInterrupt:
        console.line()
        console.error("Interrupted.")
        console.error(f"Please check the log file: {log_path}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
