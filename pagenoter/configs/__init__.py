import os.path as osp
import shutil

import yaml

from pagenoter.utils.logger import logger


here = osp.dirname(osp.abspath(__file__))

PAGE_PLACEHOLDER = "$p$"
RELATIVE_PATH_CHOICES = ("ask", "always", "never")


def update_dict(target_dict, new_dict, validate_item=None):
    for key, value in new_dict.items():
        if validate_item:
            validate_item(key, value)
        if key not in target_dict:
            logger.warning("Skipping unexpected key in config: {}".format(key))
            continue
        if isinstance(target_dict[key], dict) and isinstance(value, dict):
            update_dict(target_dict[key], value, validate_item=validate_item)
        else:
            target_dict[key] = value


# -----------------------------------------------------------------------------


def user_config_path():
    return osp.join(osp.expanduser("~"), ".pagenoterrc")


def get_default_config():
    config_file = osp.join(here, "default_config.yaml")
    with open(config_file) as f:
        config = yaml.safe_load(f)

    # save default config to ~/.pagenoterrc
    user_config_file = user_config_path()
    if not osp.exists(user_config_file):
        try:
            shutil.copy(config_file, user_config_file)
        except Exception:
            logger.warning("Failed to save config: {}".format(user_config_file))

    return config


def validate_config_item(key, value):
    if key == "note_title_template" and PAGE_PLACEHOLDER not in str(value):
        raise ValueError(
            "Config key 'note_title_template' must contain {}: {}".format(
                PAGE_PLACEHOLDER, value
            )
        )
    if key == "store_relative_paths" and value not in RELATIVE_PATH_CHOICES:
        raise ValueError(
            "Unexpected value for config key 'store_relative_paths': {}".format(
                value
            )
        )
    if key in ("document", "note_page"):
        if not value or not str(value).strip() or any(c.isspace() for c in str(value)):
            raise ValueError(
                "Property name for '{}' must be a single word: {!r}".format(
                    key, value
                )
            )
    if key == "initial_zoom_percent" and not 50 <= float(value) <= 300:
        raise ValueError(
            "Config key 'initial_zoom_percent' out of range: {}".format(value)
        )


def get_config(config_file_or_yaml=None, config_from_args=None):
    # 1. default config
    config = get_default_config()

    # 2. specified as file or yaml
    if config_file_or_yaml is not None:
        config_from_yaml = yaml.safe_load(config_file_or_yaml)
        if not isinstance(config_from_yaml, dict):
            with open(config_from_yaml) as f:
                logger.info(
                    "Loading config file from: {}".format(config_from_yaml)
                )
                config_from_yaml = yaml.safe_load(f)
        if config_from_yaml:
            update_dict(
                config, config_from_yaml, validate_item=validate_config_item
            )

    # 3. command line argument or specified config file
    if config_from_args is not None:
        update_dict(
            config, config_from_args, validate_item=validate_config_item
        )

    return config
