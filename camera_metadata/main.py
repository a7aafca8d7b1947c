import argparse
import json
import logging
import sys
from typing import Any, Dict, List

from tqdm import tqdm

from . import config
from .metadata.extract import InspectionSession
from .storage import get_config_file, remove_stale_cache


def setup_logging(verbose: bool):
    """Sets up console logging."""
    log_level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    # Silence chatty libraries
    logging.getLogger("exifread").setLevel(logging.ERROR)
    logging.getLogger("PIL").setLevel(logging.WARNING)


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Camera Metadata: show capture details of photos and videos")

    p.add_argument("files", nargs="*", help="Image or video files (a 'file:' prefix is accepted)")

    p.add_argument("--type", choices=["image", "video"], default=None, help="Skip extension-based routing")
    p.add_argument("--json", action="store_true", help="Print results as JSON")
    p.add_argument("--delete", action="store_true", help="Delete the given files instead of inspecting them")
    p.add_argument("--timeout", type=float, default=config.INSPECTOR_TIMEOUT,
                   help="Seconds to wait for the container inspection tool")
    p.add_argument("--config", action="store_true", help="Print the discovered camera config file")
    p.add_argument("--clean-cache", action="store_true", help="Evict the pipeline cache if it is stale")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    return p.parse_args(argv)


def format_result(name: str, result: Dict[str, Any]) -> str:
    lines = [name]
    for key, value in result.items():
        if key == 'tracks':
            for track in value:
                summary = ", ".join(f"{k}={v}" for k, v in track.items())
                lines.append(f"  track: {summary}")
            continue
        # Multi-line dates are shown on one line
        text = str(value).replace("\n", " ")
        lines.append(f"  {key}: {text}")
    return "\n".join(lines)


def inspect_files(files: List[str], kind, timeout: float) -> Dict[str, Dict[str, Any]]:
    results: Dict[str, Dict[str, Any]] = {}
    with InspectionSession(inspector_timeout=timeout) as session:
        iterator = tqdm(files, desc="Inspecting") if len(files) > 1 else files
        for file_url in iterator:
            results[file_url] = session.inspect(file_url, kind=kind)
    return results


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        if args.config:
            print(get_config_file())

        if args.clean_cache:
            removed = remove_stale_cache()
            logging.info("Pipeline cache removed." if removed else "Pipeline cache kept.")

        if args.delete:
            session = InspectionSession(inspector_timeout=args.timeout)
            failed = [f for f in args.files if not session.delete_image(f)]
            for f in failed:
                logging.error(f"Could not delete {f}")
            return 1 if failed else 0

        if args.files:
            results = inspect_files(args.files, args.type, args.timeout)
            if args.json:
                print(json.dumps(results, indent=2))
            else:
                for name, result in results.items():
                    print(format_result(name, result))
        return 0
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        return 1
    except Exception:
        logging.exception("Fatal error during inspection.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
