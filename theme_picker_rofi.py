import sys
import logging
import theme_picker as picker

logger = logging.getLogger(__name__)


def list_themes(switcher: picker.Switcher):
    """Print the themes, marking the current one as rofi's active row"""
    themes = switcher.helper.list()
    try:
        current = switcher.config.current_theme()
        print(f"\0active\x1f{picker.get_cur_idx(themes, current)}")
    except (picker.ConfigError, picker.NotFoundError) as error:
        logger.info("Not marking the current theme: %s", error.message)
    for name in themes:
        print(name)


def main():
    settings = picker.Settings.load()
    logging.basicConfig(level=settings.log_level.upper())
    switcher = picker.Switcher.from_settings(settings)
    try:
        if len(sys.argv) == 1:
            list_themes(switcher)
        elif len(sys.argv) == 2:
            picker.switch_theme(switcher.helper, sys.argv[1], False)
    except picker.ThemePickerError as error:
        error.show()
        sys.exit(error.exit_code)


if __name__ == "__main__":
    main()
