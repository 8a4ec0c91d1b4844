import os
import re
import sys
from logging import Logger
from pathlib import Path
from typing import Any, Dict, Tuple

import yaml

from cert_connector.errors import InvalidParameterError, MissingParameterError
from cert_connector.resources import (
    ResourceDescriptor,
    descriptor_from_config,
    get_descriptor,
)

_ENV_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

REQUEST_OPTION_KEYS = ("headers", "auth", "proxies", "verify", "timeout", "max_pages")
CALL_PARAM_KEYS = ("page_size", "query_string", "collection_id")


class ConfigReader:
    def __init__(self, log: Logger, configs_path: Path) -> None:
        """Initializes the reader with a YAML file path and a logger.

        :param configs_path: Path to the configurations file.
        :param log: Logger instance for logging messages.
        """
        self.configs_path = Path(configs_path)
        self.configs_data = None
        self.log = log

    def load_configurations(self) -> "ConfigReader":
        """Loads the YAML file into the configs_data attribute.

        :return: Self for fluent interface.
        :raises SystemExit: If the file cannot be loaded or does not exist.
        """
        try:
            self._check_path_exists()
            try:
                with open(self.configs_path, "rb") as configs_file:
                    self.configs_data = yaml.safe_load(configs_file) or {}
                return self
            except Exception as e:
                self.log.error(
                    "Issue loading file '%s': %s" % (self.configs_path, e)
                )
                sys.exit(1)
        except FileNotFoundError as e:
            self.log.error("Issue loading file: %s" % (e))
            sys.exit(1)

    def _check_path_exists(self) -> None:
        """Checks if the config file exists at the specified path.

        :raises FileNotFoundError: If the configurations file does not exist.
        """
        if not self.configs_path.exists():
            raise FileNotFoundError(
                "The file '%s' does not exist." % (self.configs_path)
            )


def expand_env_value(v: Any) -> Any:
    if isinstance(v, str):
        return _ENV_RE.sub(lambda m: os.getenv(m.group(1), m.group(0)), v)
    if isinstance(v, dict):
        return {k: expand_env_value(vv) for k, vv in v.items()}
    if isinstance(v, list):
        return [expand_env_value(x) for x in v]
    return v


def _resolved_or_none(value: Any) -> Any:
    # an unset ${VAR} stays literal after expansion; treat it as not supplied
    if isinstance(value, str) and _ENV_RE.search(value):
        return None
    return value


def _resolve_descriptor(name: str, res_cfg: Dict[str, Any]) -> ResourceDescriptor:
    if res_cfg.get("path") or res_cfg.get("columns"):
        return descriptor_from_config(name, res_cfg)
    return get_descriptor(name)


def prepare(
    config: Dict[str, Any], resource: str, env_name: str
) -> Tuple[
    Dict[str, Any], ResourceDescriptor, Dict[str, Any], Dict[str, Any], Dict[str, Any]
]:
    """Return (env_cfg, descriptor, call_params, req_opts, out_cfg)."""
    envs = config.get("envs") or {}
    if env_name not in envs:
        raise InvalidParameterError(
            f"env '{env_name}' not found under 'envs'. Known: {sorted(envs)}"
        )
    env_cfg = expand_env_value(envs.get(env_name) or {})
    api_url = env_cfg.get("api_url") or env_cfg.get("base_url")
    if not api_url:
        raise MissingParameterError(
            f"env '{env_name}' must define a non-empty api_url"
        )

    res_root = config.get("resources") or {}
    res_cfg = expand_env_value(res_root.get(resource) or {})
    descriptor = _resolve_descriptor(resource, res_cfg)

    # request options: request_defaults < resource overrides
    global_opts = expand_env_value(config.get("request_defaults") or {})
    req_opts = {k: global_opts[k] for k in REQUEST_OPTION_KEYS if k in global_opts}
    for k in REQUEST_OPTION_KEYS:
        if k not in res_cfg:
            continue
        if k in ("headers", "proxies") and isinstance(res_cfg[k], dict):
            req_opts[k] = {**(req_opts.get(k) or {}), **res_cfg[k]}
        else:
            req_opts[k] = res_cfg[k]

    call_params: Dict[str, Any] = {
        "api_url": api_url,
        "claim_token": _resolved_or_none(env_cfg.get("claim_token")),
    }
    if env_cfg.get("page_size") is not None:
        call_params["page_size"] = env_cfg["page_size"]
    for k in CALL_PARAM_KEYS:
        if res_cfg.get(k) is not None:
            call_params[k] = res_cfg[k]
    for spec in descriptor.flags:
        if spec.arg in res_cfg:
            call_params[spec.arg] = res_cfg[spec.arg]

    out_cfg = {
        **(config.get("output") or {}),
        **(res_cfg.get("output") or {}),
    }
    out_cfg = expand_env_value(out_cfg)
    return env_cfg, descriptor, call_params, req_opts, out_cfg


def load_config(log: Logger, path: Path) -> Dict[str, Any]:
    config = ConfigReader(log, path).load_configurations().configs_data
    log.info("Configuration loaded successfully.")
    return config
