"""
Compile one Redis-backed query from the command line.

Usage:
    python -m redis_qparser --method smembers --key brands --field brand
    python -m redis_qparser --method zrevrangebyscore --key boosts --field tag --min 0 --json
    python -m redis_qparser --check
"""

import argparse
import json
import sys

from loguru import logger

from .config import Config
from .errors import ConfigurationError, FatalRetrievalError
from .log import configure_logging
from .models import (
    PARAM_KEY,
    PARAM_MAX,
    PARAM_METHOD,
    PARAM_MIN,
    PARAM_OPERATOR,
    PARAM_USE_ANALYZER,
)
from .parser import RedisQueryParserPlugin
from .redis_client import check_redis_health

EXIT_RETRIEVAL_ERROR = 1
EXIT_CONFIG_ERROR = 2


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="redis_qparser",
        description="Build a boolean query from terms stored in Redis",
    )
    parser.add_argument("--method", help="smembers, zrevrangebyscore or zrangebyscore")
    parser.add_argument("--key", help="Redis key holding the terms")
    parser.add_argument("--field", help="Field the clauses match against")
    parser.add_argument("--operator", default=None, help="AND or OR (default OR)")
    parser.add_argument("--use-analyzer", default=None, help="true/false (default true)")
    parser.add_argument("--min", default=None, help="Lowest score to include")
    parser.add_argument("--max", default=None, help="Highest score to include")
    parser.add_argument("--retries", type=int, default=Config.REDIS_MAX_RETRIES)
    parser.add_argument("--json", action="store_true", help="Print the query as JSON")
    parser.add_argument("--check", action="store_true", help="Only ping Redis")
    parser.add_argument("--log-level", default=Config.LOG_LEVEL)
    return parser


def main(argv=None) -> int:
    args = build_arg_parser().parse_args(argv)
    configure_logging(args.log_level)

    if args.check:
        ok, message = check_redis_health()
        print(message)
        return 0 if ok else EXIT_RETRIEVAL_ERROR

    params = {
        PARAM_METHOD: args.method,
        PARAM_KEY: args.key,
        PARAM_OPERATOR: args.operator,
        PARAM_USE_ANALYZER: args.use_analyzer,
        PARAM_MIN: args.min,
        PARAM_MAX: args.max,
    }

    try:
        Config.validate()
        with RedisQueryParserPlugin({"retries": args.retries}) as plugin:
            query = plugin.create_parser(params, field_name=args.field).parse()
    except (ConfigurationError, ValueError) as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR
    except FatalRetrievalError as e:
        logger.error(f"Retrieval failed after {e.attempts} tries: {e}")
        return EXIT_RETRIEVAL_ERROR

    if args.json:
        print(json.dumps(query.to_dict(), indent=2))
    else:
        print(query)
    return 0


if __name__ == "__main__":
    sys.exit(main())
