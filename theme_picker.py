import os
import yaml
import click
import logging
import tomllib
import subprocess
from typing import List, Optional
from xdg import xdg_config_home
from dataclasses import dataclass, fields

logger = logging.getLogger(__name__)

HELPER = "alacritty-theme-switcher"


class ThemePickerError(click.ClickException):
    """Base error, click prints it and exits with status 1"""


class ConfigError(ThemePickerError):
    """The alacritty config could not be read or has no theme import"""


class HelperError(ThemePickerError):
    """The theme helper program could not be run"""


class NotFoundError(ThemePickerError):
    """The current theme is missing from the helper's listing"""


@dataclass
class Settings:
    """The picker's own settings, loaded from an optional yaml file"""

    helper: str = HELPER
    alacritty_config: str = None
    fzf: str = "fzf"
    height: str = "50%"
    min_height: int = 2
    header_lines: int = 1
    preview_key: str = "tab"
    log_level: str = "WARNING"

    @classmethod
    def load(cls, config: Optional[str] = None) -> "Settings":
        """Load the settings from the config directory

        Missing or malformed files give the defaults, unknown keys are ignored.

        Args:
            config: (optional) the path of a config directory to use
        """
        if config is None:
            config = xdg_config_home()
        path = os.path.join(config, "alacritty-theme-picker", "config.yaml")
        if not os.path.exists(path):
            return cls()
        with open(path) as file:
            raw = yaml.safe_load(file)
        if not isinstance(raw, dict):
            raw = {}
        known = {field.name for field in fields(cls)}
        for key in raw.keys() - known:
            logger.warning("Ignoring unknown setting %r in %s", key, path)
        # empty values keep the defaults
        return cls(
            **{
                key: value
                for key, value in raw.items()
                if key in known and value is not None
            }
        )


class AlacrittyConfig:
    """Read access to the alacritty config file"""

    def __init__(self, path: Optional[str] = None):
        """Initialize the reader

        Args:
            path: (optional) the config file, ~/.config/alacritty/alacritty.toml by default
        """
        self.path = os.path.expanduser(path) if path else None

    def resolve_path(self) -> str:
        if self.path is None:
            home = os.environ.get("HOME")
            if not home:
                raise ConfigError("HOME is not set")
            self.path = os.path.join(home, ".config", "alacritty", "alacritty.toml")
        return self.path

    def read(self) -> str:
        path = self.resolve_path()
        logger.debug("Reading %s", path)
        try:
            with open(path, "r") as file:
                return file.read()
        except OSError as error:
            raise ConfigError(f"Cannot read {path}: {error}") from error

    def imports(self) -> List[str]:
        """Get the import list, from [general] or the legacy top-level key"""
        text = self.read()
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError:
            data = {}
        general = data.get("general")
        if isinstance(general, dict) and _is_import_list(general.get("import")):
            return general["import"]
        if _is_import_list(data.get("import")):
            logger.debug("Using the legacy top-level import key")
            return data["import"]
        raise ConfigError(f"{self.path} does not contain an import field")

    def current_theme(self) -> str:
        """Get the name of the active theme, the last imported file"""
        imports = self.imports()
        if not imports:
            raise ConfigError("No theme found")
        return theme_name(imports[-1])


def _is_import_list(value) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def theme_name(theme_file: str) -> str:
    """Turn an imported theme path into a theme name

    Args:
        theme_file: the path, e.g. themes/solarized-dark.toml
    """
    return theme_file.split("/")[-1].replace(".toml", "")


class ThemeHelper:
    """Runs the external program that lists and applies themes"""

    def __init__(self, program: str = HELPER):
        self.program = program

    def _run(self, *args: str) -> subprocess.CompletedProcess:
        command = [self.program, *args]
        logger.debug("Running %s", command)
        try:
            return subprocess.run(command, capture_output=True)
        except OSError as error:
            raise HelperError(f"Failed to execute {self.program}: {error}") from error

    def list(self) -> List[str]:
        """List the available themes in the helper's order"""
        output = self._run("-l").stdout.decode(errors="replace")
        lines = [line.strip() for line in output.split("\n")]
        return [line for line in lines if line]

    def apply(self, name: str):
        """Switch to a theme, the helper's exit status is not checked

        Args:
            name: the theme to switch to
        """
        self._run(name)


class FzfPicker:
    """Interactive theme selection through fzf"""

    def __init__(self, settings: Optional[Settings] = None):
        if settings is None:
            settings = Settings()
        self.settings = settings

    def command(self) -> List[str]:
        settings = self.settings
        return [
            settings.fzf,
            "--height",
            str(settings.height),
            "--min-height",
            str(settings.min_height),
            "--header-lines",
            str(settings.header_lines),
            "--bind",
            f"{settings.preview_key}:execute({settings.helper} {{}})",
        ]

    def select(self, candidates: List[str]) -> Optional[str]:
        """Let the user pick one of the candidates

        Returns None if the user aborted or selected nothing.

        Args:
            candidates: the themes to choose from
        """
        command = self.command()
        logger.debug("Running %s", command)
        try:
            result = subprocess.run(
                command,
                input="\n".join(candidates),
                stdout=subprocess.PIPE,
                text=True,
            )
        except OSError as error:
            logger.warning("Cannot run %s: %s", self.settings.fzf, error)
            return None
        if result.returncode != 0:
            logger.debug("%s exited with %d", self.settings.fzf, result.returncode)
            return None
        selected = [line for line in result.stdout.split("\n") if line]
        return selected[-1] if selected else None


def get_current_theme(config: Optional[AlacrittyConfig] = None) -> str:
    return (config or AlacrittyConfig()).current_theme()


def get_theme_list(helper: Optional[ThemeHelper] = None) -> List[str]:
    return (helper or ThemeHelper()).list()


def get_cur_idx(themes: List[str], current: str) -> int:
    """Find the position of the current theme in the listing

    Args:
        themes: the listed themes
        current: the theme read from the config
    """
    try:
        return themes.index(current)
    except ValueError:
        raise NotFoundError(f"Current theme {current!r} is not in the theme list")


def next_index(idx: int, count: int) -> int:
    return (idx + 1) % count


def prev_index(idx: int, count: int) -> int:
    return (idx + count - 1) % count


def switch_theme(helper: ThemeHelper, name: str, print_out: bool):
    """Apply a theme, optionally telling the user about it

    Args:
        helper: the helper that applies the theme
        name: the theme to switch to
        print_out: whether to print a confirmation
    """
    helper.apply(name)
    if print_out:
        styled = click.style(name, fg="green", bold=True)
        click.echo(f"↪️ Changed alacritty theme to: {styled}")


def fzf_select_theme(
    themes: List[str], picker: Optional[FzfPicker] = None
) -> Optional[str]:
    return (picker or FzfPicker()).select(themes)


class Switcher:
    """Dispatches the single command argument to the components"""

    def __init__(
        self,
        config: AlacrittyConfig,
        helper: ThemeHelper,
        picker: FzfPicker,
    ):
        self.config = config
        self.helper = helper
        self.picker = picker

    @classmethod
    def from_settings(cls, settings: Settings) -> "Switcher":
        return cls(
            config=AlacrittyConfig(settings.alacritty_config),
            helper=ThemeHelper(settings.helper),
            picker=FzfPicker(settings),
        )

    def step(self, offset: int):
        """Cycle through the themes

        Args:
            offset: 1 for the next theme, -1 for the previous one
        """
        current = self.config.current_theme()
        themes = self.helper.list()
        idx = get_cur_idx(themes, current)
        if offset > 0:
            idx = next_index(idx, len(themes))
        else:
            idx = prev_index(idx, len(themes))
        switch_theme(self.helper, themes[idx], True)

    def pick(self):
        """Pick interactively, reasserting the current theme on abort"""
        current = self.config.current_theme()
        themes = self.helper.list()
        selected = self.picker.select(themes)
        if selected is None:
            switch_theme(self.helper, current, False)
        else:
            switch_theme(self.helper, selected, True)

    def run(self, command: Optional[str] = None):
        """Run one command

        Args:
            command: (optional) n, p, c, l, f or a theme name
        """
        if command is None or command == "f":
            self.pick()
        elif command == "n":
            self.step(1)
        elif command == "p":
            self.step(-1)
        elif command == "c":
            click.echo(self.config.current_theme())
        elif command == "l":
            for name in self.helper.list():
                click.echo(name)
        else:
            switch_theme(self.helper, command, True)


@click.command(
    help="""Pick an alacritty theme

    COMMAND is one of n (next), p (previous), c (print the current theme),
    l (list themes), f (pick with fzf, the default) or a theme name to switch to.
    """
)
@click.option(
    "--config",
    help="Path to the directory where the picker's config is saved",
    type=click.Path(exists=True, file_okay=False),
    default=None,
)
@click.argument("command", required=False)
def main(config: Optional[str] = None, command: Optional[str] = None):
    settings = Settings.load(config)
    logging.basicConfig(level=settings.log_level.upper())
    Switcher.from_settings(settings).run(command)


if __name__ == "__main__":
    main()
