import configparser
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from smartbuild.modules.errors import ConfigurationError

CONFIG_NAME = ".smartbuild.conf"

DEFAULT_LOCATIONS = [
    CONFIG_NAME,
    os.path.expanduser("~/.config/smartbuild/smartbuild.conf"),
    "/etc/smartbuild/smartbuild.conf",
]

DEFAULT_BUILD_COMMAND = "pnpm --filter {package} run build"

MISSING_POLICIES = ("warn", "error", "ignore")


class SmartBuildConfig:
    def __init__(self, locations=None):
        self.locations = locations or DEFAULT_LOCATIONS
        self.config = configparser.ConfigParser()
        self.loaded_from = None
        self.reload()

    def reload(self, locations=None):
        """(Re)load settings from the first config file found; defaults apply when there is none."""
        if locations:
            self.locations = locations
        self.config = configparser.ConfigParser()
        self.loaded_from = None
        for path in self.locations:
            if os.path.isfile(path):
                self.config.read(path)
                self.loaded_from = path
                return

    def get(self, section, option, fallback=None):
        try:
            return self.config.get(section, option, fallback=fallback)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return fallback

    def getboolean(self, section, option, fallback=False):
        try:
            return self.config.getboolean(section, option, fallback=fallback)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return fallback

    def getint(self, section, option, fallback=0):
        try:
            return self.config.getint(section, option, fallback=fallback)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return fallback

    def getlist(self, section, option, fallback=None, delimiter=","):
        raw = self.get(section, option, fallback="")
        if raw:
            return [item.strip() for item in raw.split(delimiter) if item.strip()]
        return fallback or []


def config_locations(root: str = ".") -> list:
    """Default locations with the workspace-local file resolved against root."""
    return [os.path.join(root, CONFIG_NAME)] + DEFAULT_LOCATIONS[1:]


def env_flag(environ: Mapping[str, str], name: str) -> bool:
    return environ.get(name, "").strip().lower() == "yes"


@dataclass(frozen=True)
class RunOptions:
    """
    Explicit run configuration handed to the pipeline.

    skip_execution: compute and report the order without launching builds
    verbose:        surface full diagnostics on failure
    """
    skip_execution: bool = False
    verbose: bool = False
    build_command: str = DEFAULT_BUILD_COMMAND
    missing_policy: str = "warn"

    def __post_init__(self):
        if self.missing_policy not in MISSING_POLICIES:
            raise ConfigurationError(
                f"missing_policy must be one of {', '.join(MISSING_POLICIES)}, got {self.missing_policy!r}"
            )

    @classmethod
    def from_config(cls, cfg: Optional[SmartBuildConfig] = None,
                    environ: Optional[Mapping[str, str]] = None) -> "RunOptions":
        # SKIP_BUILD=yes / DEBUG=yes are the only environment toggles
        cfg = cfg or config
        environ = os.environ if environ is None else environ
        return cls(
            skip_execution=env_flag(environ, "SKIP_BUILD"),
            verbose=env_flag(environ, "DEBUG"),
            build_command=cfg.get("build", "command", fallback=DEFAULT_BUILD_COMMAND),
            missing_policy=cfg.get("build", "missing_dependencies", fallback="warn").lower(),
        )


# Default instance shared by the other modules
config = SmartBuildConfig()
