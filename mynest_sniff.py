#!/usr/bin/env python3
from __future__ import annotations
import os
import sys
import argparse
import shutil
import re
import json
import time
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.text import Text
from rich.table import Table
from rich.panel import Panel

from config.constants import EXIT_CODES, MYNEST_CONFIG, get_version
from sniffer.core.bridge import BackgroundController, ContentBridge, SniffReport
from sniffer.models.config import SniffConfig
from sniffer.models.exceptions import (
    ConfigurationException,
    MyNestAPIException,
    NetworkException,
    OutputException,
    ValidationException,
)
from sniffer.models.resource import MediaResource
from sniffer.utils.logger import setup_logging, get_logger
from sniffer.utils.output_formatter import format_size, result_serializer
from sniffer.utils.validator import input_sanitizer

logger = get_logger("cli")

THEMES = {
    "safe": {
        "accent": "bright_cyan",
        "desc": "grey70",
        "section": "bright_yellow",
        "paren": "white",
    },
    "nest": {
        "accent": "#c9a227",
        "desc": "#6e6555",
        "section": "#59483d",
        "paren": "white",
    },
}
HELP_THEME = os.getenv("MYNEST_HELP_THEME", "safe")
if HELP_THEME not in THEMES:
    HELP_THEME = "safe"

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:")

TITLE = "MyNest Media Sniffer - find downloadable images, videos and audio on a page"
TYPE_CHOICES = ("image", "video", "audio")


def _normalize_target_url(u: str) -> str:
    if not u:
        return u
    if not _SCHEME_RE.match(u):
        return f"https://{u}"
    return u


def _shorten(url: str, limit: int = 80) -> str:
    return url if len(url) <= limit else url[: limit - 3] + "..."


class WideFormatter(argparse.RawTextHelpFormatter):
    def __init__(self, prog):
        width = shutil.get_terminal_size((100, 20)).columns
        super().__init__(prog, max_help_position=32, width=max(90, min(width, 140)))


def _opt_metavar(action: argparse.Action) -> str:
    if action.option_strings:
        left = ", ".join(action.option_strings)
        if action.metavar:
            left += f" {action.metavar}"
        return left
    return action.metavar or action.dest


def _style_parens_rich(text: Text, color: str) -> None:
    s = text.plain
    for m in re.finditer(r"\([^)]*\)", s):
        text.stylize(color, m.start(), m.end())


def _rich_print_help_aligned(parser: argparse.ArgumentParser, title: str) -> None:
    theme = THEMES[HELP_THEME]
    console = Console()
    width = console.size.width

    console.print(Text(title, style=f"bold {theme['accent']}"))
    console.print()

    all_lefts = []
    for g in parser._action_groups:
        for a in g._group_actions:
            if isinstance(a, argparse._HelpAction):
                continue
            all_lefts.append(_opt_metavar(a))
    left_w = max((len(s) for s in all_lefts), default=24)
    left_w = max(22, min(left_w, 36))

    for group in parser._action_groups:
        actions = [a for a in group._group_actions if not isinstance(a, argparse._HelpAction)]
        if not actions:
            continue
        console.print(f"[{theme['section']}]{group.title}[/]")

        table = Table(box=None, show_header=False, pad_edge=False, padding=(0, 1))
        table.add_column("opt", style=f"bold {theme['accent']}", no_wrap=True, min_width=left_w, max_width=left_w)
        rem = max(20, width - left_w - 4)
        table.add_column("desc", style=theme["desc"], overflow="fold", min_width=rem, max_width=rem)
        for a in actions:
            left = _opt_metavar(a).ljust(left_w)
            t_desc = Text(a.help or "", style=theme["desc"])
            _style_parens_rich(t_desc, theme["paren"])
            table.add_row(left, t_desc)
        console.print(table)
        console.print()


class MyNestSniffCLI:
    def __init__(self):
        self.parser = self._create_parser()
        self.config: Optional[SniffConfig] = None
        self.bridge: Optional[ContentBridge] = None
        self.console = Console(stderr=True)

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(description=TITLE, formatter_class=WideFormatter, add_help=False, usage=argparse.SUPPRESS)
        info = parser.add_argument_group("Information Options")
        info.add_argument("-h", "--help", action="store_true", help="Show this help message and exit")
        info.add_argument("-V", "--version", action="store_true", help="Show version information and exit")

        inp = parser.add_argument_group("Input Options")
        inp.add_argument("target", nargs="?", help="Page URL to sniff (e.g., https://example.com/post/1)")

        sniff = parser.add_argument_group("Sniff Options")
        sniff.add_argument("--headless", action="store_true", default=None, help="Render the page in headless Chromium (sees script-loaded media and timing data)")
        sniff.add_argument("--thumbnails", action="store_true", default=None, help="Capture preview frames for up to 3 videos after the result is printed (needs Playwright)")
        sniff.add_argument("--type", dest="types", action="append", choices=TYPE_CHOICES, help="Only keep resources of this type (repeatable)")
        sniff.add_argument("--allow-blob", action="store_true", default=None, help="Keep blob: URLs that have no recoverable original")
        sniff.add_argument("--settle-ms", type=int, help="Wait after scrolling before reading the page, headless only (default: 1500)")

        net = parser.add_argument_group("Network Options")
        net.add_argument("-t", "--timeout", type=int, help="Page request timeout in seconds (default: 15)")
        net.add_argument("--size-timeout", dest="size_probe_timeout", type=float, help="HEAD size probe timeout in seconds (default: 5)")
        net.add_argument("--ua", "--user-agent", dest="user_agent", help="Custom User-Agent string")
        net.add_argument("--header", action="append", dest="headers", help='Extra HTTP header (repeatable, e.g., "K: V")')
        net.add_argument("--cookie", help="Cookie header value")
        net.add_argument("--proxy", dest="proxy_url", help="HTTP/SOCKS proxy URL (applies to HTTP fetches and headless)")

        nest = parser.add_argument_group("MyNest Options")
        nest.add_argument("--api-url", help="MyNest base URL (env: MYNEST_API_URL)")
        nest.add_argument("--api-token", help="MyNest API token (env: MYNEST_API_TOKEN)")
        nest.add_argument("--category", dest="default_category", help=f'Download category (default: {MYNEST_CONFIG["default_category"]})')
        nest.add_argument("--send", action="store_true", help="Submit every sniffed resource to MyNest as a download task")
        nest.add_argument("--test-connection", action="store_true", help="Check the MyNest health endpoint and exit")
        nest.add_argument("--profile", help="Load api/headers/cookie/proxy from a JSON profile (CLI args override profile)")

        out = parser.add_argument_group("Output Options")
        out.add_argument("--json", action="store_true", help="Emit the resource list as JSON")
        out.add_argument("--format", dest="output_format", choices=("tsv", "json", "jsonl", "csv"), help="Plain output format instead of the table")
        out.add_argument("-o", "--output", help="Write results to file")
        out.add_argument("--quiet", action="store_true", help="Suppress comments and progress messages")
        out.add_argument("--verbose", action="store_true", help="Debug logging")

        return parser

    def parse_arguments(self, argv: Optional[List[str]] = None) -> argparse.Namespace:
        return self.parser.parse_args(argv)

    def show_help(self) -> None:
        _rich_print_help_aligned(self.parser, TITLE)

    def _load_profile_file(self, path: str) -> Dict[str, Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigurationException(f"Failed to load profile {path}: {e}", config_key="profile")
        if not isinstance(data, dict):
            raise ConfigurationException("Profile JSON must be an object", config_key="profile")
        return data

    def _create_config(self, args: argparse.Namespace) -> SniffConfig:
        config = SniffConfig.from_env()

        if args.profile:
            profile = self._load_profile_file(args.profile)
            config.apply_overrides({
                "api_url": profile.get("api_url"),
                "api_token": profile.get("api_token"),
                "default_category": profile.get("category"),
                "user_agent": profile.get("user_agent"),
                "cookies": profile.get("cookie"),
                "proxy_url": profile.get("proxy"),
                "headers": input_sanitizer.sanitize_headers(profile.get("headers") or {}),
            })

        headers = dict(config.headers)
        for raw in args.headers or []:
            k, v = input_sanitizer.parse_header(raw)
            headers[k] = v

        fmt = "json" if args.json else args.output_format

        config.apply_overrides({
            "headless": args.headless,
            "thumbnails": args.thumbnails,
            "allow_blob": args.allow_blob,
            "settle_ms": args.settle_ms,
            "timeout": args.timeout,
            "size_probe_timeout": args.size_probe_timeout,
            "user_agent": args.user_agent,
            "cookies": args.cookie,
            "proxy_url": args.proxy_url,
            "api_url": args.api_url,
            "api_token": args.api_token,
            "default_category": args.default_category,
            "output_format": fmt,
            "headers": headers,
            "quiet_mode": args.quiet,
            "verbose": args.verbose,
        })
        if args.verbose:
            config.log_level = "DEBUG"

        config.validate()
        return config

    def _render_table(self, report: SniffReport, resources: List[MediaResource]) -> None:
        theme = THEMES[HELP_THEME]
        console = Console()
        table = Table(title=report.message, header_style=f"bold {theme['accent']}")
        table.add_column("#", justify="right")
        table.add_column("Type")
        table.add_column("Size", justify="right")
        table.add_column("Dimensions")
        table.add_column("URL", overflow="fold")
        table.add_column("Found by", style=theme["desc"])

        for i, r in enumerate(resources, 1):
            dims = f"{r.width}x{r.height}" if r.width and r.height else "-"
            table.add_row(str(i), r.type.value, format_size(r.size), dims, r.url, r.discovered_by or "")
        console.print(table)

    def _write_output(self, report: SniffReport, resources: List[MediaResource], args: argparse.Namespace) -> None:
        fmt = self.config.output_format if (args.json or args.output_format or args.output) else None

        if fmt is None:
            self._render_table(report, resources)
            return

        output_file = open(args.output, "w", encoding="utf-8") if args.output else None
        try:
            out_stream = output_file or sys.stdout
            result_serializer.serialize_to_file(
                resources, out_stream, format_type=fmt, include_header=not args.quiet
            )
            out_stream.flush()
        finally:
            if output_file:
                output_file.close()

    def _send(self, controller: BackgroundController, resources: List[MediaResource]) -> int:
        outcomes = controller.download_resources(resources, category=self.config.default_category)
        failed = [o for o in outcomes if not o["success"]]
        if not self.config.quiet_mode:
            self.console.print(
                f"[bold]Sent {len(outcomes) - len(failed)}/{len(outcomes)} resources to MyNest[/]"
            )
            for o in failed:
                self.console.print(f"  [red]failed[/] {_shorten(o['url'])}: {o['error']}")
        return EXIT_CODES["API_ERROR"] if failed else EXIT_CODES["SUCCESS"]

    def _wait_for_thumbnails(self, controller: BackgroundController, page_url: str) -> None:
        thread = self.bridge.last_thumbnail_thread if self.bridge else None
        if thread is None:
            return
        budget = self.config.max_thumbnails * self.config.thumbnail_timeout + self.config.headless_timeout_ms / 1000.0
        thread.join(timeout=budget)
        captured = [r for r in controller.cache.get(page_url) if r.has_thumbnail and r.thumbnail.startswith("data:")]
        if not self.config.quiet_mode:
            self.console.print(f"Captured {len(captured)} video thumbnails")

    def run(self, args: argparse.Namespace) -> int:
        try:
            self.config = self._create_config(args)

            setup_logging(
                level=self.config.log_level if (args.verbose or os.getenv("MYNEST_LOG_LEVEL")) else "WARNING",
                log_file=self.config.log_file,
                enable_console=not args.quiet,
            )

            controller = BackgroundController(self.config)

            if args.test_connection:
                result = controller.test_connection()
                if result.get("success"):
                    self.console.print(f"[green]{result['message']}[/]")
                    return EXIT_CODES["SUCCESS"]
                self.console.print(f"[red]{result.get('error')}[/]")
                return EXIT_CODES["API_ERROR"]

            if not args.target:
                logger.error("No target URL provided")
                return EXIT_CODES["USAGE_ERROR"]

            page_url = _normalize_target_url(args.target.strip())
            self.bridge = ContentBridge.for_url(page_url, self.config)

            started = time.time()
            report = controller.sniff_page(self.bridge)
            duration = time.time() - started

            if report.status == "unreachable":
                body = report.message
                if report.hint:
                    body += f"\n{report.hint}"
                self.console.print(Panel(body, title=f"Cannot sniff {page_url}", border_style="red", expand=False))
                return EXIT_CODES["PAGE_UNREACHABLE"]

            if report.status == "error":
                self.console.print(f"[red]{report.message}: {report.error}[/]")
                return EXIT_CODES["UNKNOWN_ERROR"]

            resources = result_serializer.filter_resources(report.resources, args.types)
            if report.status == "empty" or not resources:
                if not args.quiet:
                    self.console.print("No media resources detected on this page")
                return EXIT_CODES["SUCCESS"]

            self._write_output(report, resources, args)

            if not args.quiet and not (args.json or args.output_format):
                self.console.print(result_serializer.create_summary(page_url, resources, duration))

            exit_code = EXIT_CODES["SUCCESS"]
            if args.send:
                exit_code = self._send(controller, resources)

            self._wait_for_thumbnails(controller, page_url)
            return exit_code

        except KeyboardInterrupt:
            logger.info("Sniff interrupted by user")
            return EXIT_CODES["UNKNOWN_ERROR"]
        except ConfigurationException as e:
            logger.error(str(e))
            return EXIT_CODES["CONFIG_ERROR"]
        except ValidationException as e:
            logger.error(str(e))
            return EXIT_CODES["USAGE_ERROR"]
        except MyNestAPIException as e:
            logger.error(str(e))
            return EXIT_CODES["API_ERROR"]
        except NetworkException as e:
            logger.error(str(e))
            return EXIT_CODES["NETWORK_ERROR"]
        except (OutputException, OSError) as e:
            logger.error(f"Cannot write output: {e}")
            return EXIT_CODES["CONFIG_ERROR"]
        finally:
            if self.bridge and getattr(self.bridge.size_resolver, "fetcher", None):
                self.bridge.size_resolver.fetcher.close()


def main(argv: Optional[List[str]] = None):
    cli = MyNestSniffCLI()
    args = cli.parse_arguments(argv)

    if args.help:
        cli.show_help()
        sys.exit(EXIT_CODES["SUCCESS"])

    if args.version:
        theme = THEMES[HELP_THEME]
        c = Console()
        c.print(f"[bold {theme['accent']}]mynest-sniff[/] - MyNest Media Sniffer v{get_version()}")
        sys.exit(EXIT_CODES["SUCCESS"])

    sys.exit(cli.run(args))


if __name__ == "__main__":
    main()
