import argparse
import logging
import sys

from quire.config import configure
from quire.exceptions import QuireError

logger = logging.getLogger("quire")


def make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quire",
        description="A small static site generator.",
    )
    parser.add_argument(
        "-C", "--root", default=".", help="Project root containing quire.toml. (Default: current directory)"
    )

    subparser = parser.add_subparsers(
        title="command",
        dest="command",
        required=True,
    )

    build_parser = subparser.add_parser(
        name="build",
        help="Build the site into the output directory."
    )
    build_parser.add_argument(
        "-m", "--minify", action="store_true", help="Enable minification."
    )
    build_parser.add_argument(
        "-d", "--include-drafts", action="store_true", help="Include draft pages."
    )
    build_parser.add_argument(
        "-q", "--quiet", action="store_true", default=None, help="Only log the build summary."
    )

    serve_parser = subparser.add_parser("serve", help="Start a live server, only build pages on request.")
    serve_parser.add_argument(
        "-b", "--bind", help="Bind to this address. (Default: 127.0.0.1)", dest="address", default="127.0.0.1"
    )
    serve_parser.add_argument(
        "-p", "--port", help="Bind to this port. (Default: 5000)", dest="port", type=int, default=5000
    )
    serve_parser.add_argument(
        "-d", "--include-drafts", action="store_true", help="Include draft pages."
    )

    return parser


def main(argv=None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    args = make_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        match args.command:
            case "build":
                from quire.build import Builder
                config = configure(args.root, quiet_mode=args.quiet)
                Builder(config, minified=args.minify, include_drafts=args.include_drafts).build()
            case "serve":
                from quire.server import Server
                config = configure(args.root)
                Server(config, args.address, args.port, args.include_drafts).run()
    except QuireError as e:
        logger.error("%s", e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
