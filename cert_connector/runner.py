import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from cert_connector.config import load_config
from cert_connector.connector import CertConnector, available_resources
from logger.basic_logger import setup_logger


def _parse_args(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        prog="cert-connector",
        description="Pull certificate inventory tables from the REST API.",
    )
    parser.add_argument("-c", "--config", help="Path to the YAML config")
    parser.add_argument("--env", dest="env_name", help="Env key under 'envs'")
    parser.add_argument(
        "--resource", help="certificates, ssl_networks, ssl_endpoints or a configured resource"
    )
    parser.add_argument("--list", action="store_true", help="List built-in resources and exit")
    parser.add_argument("--log_level", default="INFO")
    parser.add_argument(
        "--extra_env", action="append", default=[], help="KEY=VALUE; repeatable"
    )
    args = parser.parse_args(argv)
    if not args.list and not (args.config and args.env_name and args.resource):
        parser.error("--config, --env and --resource are required unless --list is given")
    return args


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    log = setup_logger(args.log_level)

    if args.list:
        print(json.dumps(available_resources(), indent=2))
        return 0

    for kv in args.extra_env:
        if "=" in kv:
            k, v = kv.split("=", 1)
            os.environ[k] = v
            log.info("[runner] Set env %s", k)

    config = load_config(log, Path(args.config))
    log.info(
        "[runner] Starting run: resource=%s env=%s config=%s",
        args.resource,
        args.env_name,
        args.config,
    )
    try:
        meta = CertConnector(config, log).run(args.resource, args.env_name)
    except Exception as e:
        log.error("[runner] Run failed: %s", e)
        return 1
    print(json.dumps({"status": "ok", "meta": meta}, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
