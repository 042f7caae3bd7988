import yaml
import os
import platform


def load_config():
    # Assuming this file is at 'repo/utils/config.py', we go up one level.
    repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))

    # Platform-specific config mapping
    config_map = {
        'Darwin': 'config.mac.yaml',
        'Windows': 'config.windows.yaml'
    }

    system = platform.system()
    platform_config = config_map.get(system)

    # Use platform-specific config if it exists, otherwise fall back to config.yaml
    candidate_files = [platform_config, 'config.yaml'] if platform_config else ['config.yaml']

    config = None
    for filename in candidate_files:
        config_path = os.path.join(repo_root, filename)
        if os.path.exists(config_path):
            with open(config_path, 'r') as file:
                try:
                    config = yaml.safe_load(file) or {}
                    break
                except yaml.YAMLError as e:
                    raise Exception(f"Error parsing '{filename}': {e}")

    if config is None:
        raise FileNotFoundError("No valid configuration file found (checked platform-specific and default).")

    config.setdefault("n8n", {})
    config.setdefault("correlation", {})
    config.setdefault("logging", {})

    return config


def load_n8n_settings(config=None):
    """
    Resolve n8n connection settings. Environment variables win over config.yaml.

    Returns:
        dict with 'api_url', 'api_key', 'timeout_seconds' and 'workflow_page_limit'.
    """
    config = config if config is not None else load_config()
    n8n_cfg = config.get("n8n", {})

    return {
        "api_url": os.getenv("N8N_API_URL") or n8n_cfg.get("api_url") or "http://localhost:5678/api/v1",
        "api_key": os.getenv("N8N_API_KEY"),
        "timeout_seconds": float(n8n_cfg.get("timeout_seconds", 30)),
        "workflow_page_limit": int(n8n_cfg.get("workflow_page_limit", 100)),
    }


if __name__ == '__main__':
    # For testing purposes, print the configuration.
    config = load_config()
    print("Loaded general configuration:")
    print(config)
