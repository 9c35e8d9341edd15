# utils/config_reader.py

import os
import yaml
import logging

logger = logging.getLogger(__name__)

# Shipped alongside the package, used when no explicit path is given
DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
                                   "config", "planner_config.yaml")


class ConfigReader:
    """
    Helper class to read the planner configuration from a YAML file.
    """
    def __init__(self, config_path=None):
        """
        Initializes the ConfigReader with the path to the configuration file.

        Args:
            config_path (str, optional): The path to the YAML configuration file.
                                         Defaults to the configuration shipped with the package.
        """
        self.config_path = config_path if config_path is not None else DEFAULT_CONFIG_PATH
        logger.info(f"ConfigReader initialized with path: {self.config_path}")

    def load_config(self):
        """
        Loads and parses the YAML configuration file.

        Returns:
            dict or None: A dictionary containing the configuration, or None if loading fails.
        """
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except FileNotFoundError:
            logger.error(f"Configuration file not found: {self.config_path}")
            return None
        except yaml.YAMLError as e:
            logger.error(f"Error parsing configuration file {self.config_path}: {e}")
            return None

        if config is None:
            # An empty file parses to None, treat it as an empty configuration
            config = {}
        if not isinstance(config, dict):
            logger.error(f"Configuration file {self.config_path} does not contain a mapping.")
            return None

        logger.info("Configuration loaded successfully.")
        logger.debug(f"Loaded config: {config}")
        return config


def load_yaml_file(path):
    """
    Loads an arbitrary YAML document (e.g. a replay scenario).

    Returns:
        object or None: The parsed document, or None if the file is missing or malformed.
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)
    except FileNotFoundError:
        logger.error(f"YAML file not found: {path}")
    except yaml.YAMLError as e:
        logger.error(f"Error parsing YAML file {path}: {e}")
    return None
