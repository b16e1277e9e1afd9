"""SSH key material for provisioning."""

from pathlib import Path

from capacity_hunter.exceptions import ConfigurationError

# Throwaway key for probe plans/applies: the operator's key never reaches a
# disposable test instance.
PLACEHOLDER_SSH_KEY = "ssh-rsa AAAAB3NzaC1yc2EAAAADAQABAAABAQC dummy-key"


def load_ssh_public_key(path: str) -> str:
    """
    Read the operator's SSH public key.

    Raises:
        ConfigurationError: Key file missing, unreadable or empty
    """
    key_path = Path(path).expanduser()
    try:
        key = key_path.read_text(encoding="utf-8").strip()
    except FileNotFoundError as e:
        raise ConfigurationError(
            f"SSH public key not found at: {key_path}. "
            "Create one with 'ssh-keygen -t rsa -b 4096' or set SSH_PUBLIC_KEY_PATH",
            {"path": str(key_path)},
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"SSH public key unreadable at: {key_path}: {e}",
            {"path": str(key_path)},
        ) from e
    if not key:
        raise ConfigurationError(f"SSH public key file is empty: {key_path}", {"path": str(key_path)})
    return key
