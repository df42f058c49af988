#!/usr/bin/env python3
"""
Terraforming Mars BGA Stats - Main CLI Interface
Reconstructs card, parameter, tracker and scoring histories from parsed game logs
"""

import argparse
import json
import logging
import os
import sys
from typing import List, Optional

from bga_tm_stats.config_manager import ConfigManager
from bga_tm_stats.export import export_parsed_game, count_rows
from bga_tm_stats.models import MalformedReplay
from bga_tm_stats.parser import GameLogParser
from bga_tm_stats.session_tracker import SessionTracker

logger = logging.getLogger(__name__)


def setup_logging(config: ConfigManager, verbose: bool = False):
    """Configure root logging from the logging section of the config"""
    level_name = 'DEBUG' if verbose else str(config.get_value('logging', 'level', 'INFO')).upper()
    handlers = [logging.StreamHandler()]
    log_file = config.get_value('logging', 'log_file')
    if log_file:
        handlers.insert(0, logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def collect_replay_files(target: str) -> List[str]:
    """
    Resolve a file or directory argument into replay log paths

    Args:
        target: A single JSON file or a directory of them

    Returns:
        list: Sorted JSON file paths
    """
    if os.path.isdir(target):
        return sorted(
            os.path.join(target, name) for name in os.listdir(target)
            if name.endswith('.json')
        )
    return [target]


def process_replay_file(file_path: str, output_dir: str, export_format: str, delimiter: str,
                        session: SessionTracker) -> bool:
    """Parse and export one replay log, recording the outcome in the session"""
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            document = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        session.record_game_outcome('failed', f"{file_path}: {e}")
        return False

    try:
        parsed = GameLogParser().parse_all(document)
    except MalformedReplay as e:
        session.record_game_outcome('failed', f"{file_path}: {e}")
        return False

    export_parsed_game(parsed, output_dir, export_format, delimiter)
    session.record_game_outcome('parsed', rows=count_rows(parsed))
    return True


def handle_parse(args, config: ConfigManager) -> int:
    """Handle parse command"""
    output_dir = args.output_dir or config.get_value('data_paths', 'stats_output_dir')
    export_format = args.format or config.get_value('export_settings', 'format', 'csv')
    delimiter = config.get_value('export_settings', 'csv_delimiter', ',')

    target = args.target or config.get_value('data_paths', 'parsed_data_dir')
    if not os.path.exists(target):
        logger.error(f"Replay log path not found: {target}")
        return 1

    replay_files = collect_replay_files(target)
    if not replay_files:
        logger.info(f"No replay logs found in {target}")
        return 0

    logger.info(f"Parsing {len(replay_files)} replay logs into {output_dir} ({export_format})")
    session = SessionTracker()
    for i, file_path in enumerate(replay_files, 1):
        logger.info(f"Parsing replay {i}/{len(replay_files)}: {file_path}")
        process_replay_file(file_path, output_dir, export_format, delimiter, session)

    session.end_session()
    summary = session.get_summary_string()
    logger.info(summary)
    print(summary)

    return 1 if session.has_failures else 0


def handle_init_config(args, config: ConfigManager) -> int:
    """Handle init-config command"""
    if config.config_file.exists() and not args.force:
        logger.error(f"{config.config_file} already exists, use --force to overwrite")
        return 1
    config.config_data = config.get_default_config()
    config.save_config()
    print(f"Wrote default configuration to {config.config_file}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        description='Terraforming Mars BGA Stats',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py parse data/parsed/91334215/game_670153426.json
  python main.py parse data/parsed/91334215 --format json --output-dir data/stats
  python main.py init-config
        """
    )

    # Global options
    parser.add_argument('--config', default='config.json',
                        help='Path to the JSON configuration file')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable debug logging')

    # Subcommands
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # parse command
    parse_parser = subparsers.add_parser('parse',
                                         help='Reconstruct statistics from replay logs')
    parse_parser.add_argument('target', nargs='?',
                              help='Replay log JSON file or directory (default: parsed_data_dir from config)')
    parse_parser.add_argument('--output-dir',
                              help='Directory for exported rows (default: stats_output_dir from config)')
    parse_parser.add_argument('--format', choices=['csv', 'json'],
                              help='Export format (default: from config)')

    # init-config command
    init_parser = subparsers.add_parser('init-config',
                                        help='Write a default configuration file')
    init_parser.add_argument('--force', action='store_true',
                             help='Overwrite an existing configuration file')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    config = ConfigManager(args.config)
    setup_logging(config, args.verbose)

    try:
        if args.command == 'parse':
            return handle_parse(args, config)
        elif args.command == 'init-config':
            return handle_init_config(args, config)
        else:
            parser.print_help()
            return 0

    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        return 1


if __name__ == '__main__':
    sys.exit(main())
