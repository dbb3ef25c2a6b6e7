import hashlib
import platform
import uuid
from typing import Any, Dict

import psutil


def get_hardware_fingerprint() -> str:
    """
    Stable identifier for this machine, sent to the license server so it can
    tell installations of the same product apart.
    """
    node = uuid.getnode()
    mac = ':'.join(f"{(node >> shift) & 0xff:02x}" for shift in range(40, -1, -8))

    fingerprint_data = "|".join([
        mac,
        str(psutil.cpu_count(logical=True)),
        platform.system(),
        platform.machine(),
    ])
    return hashlib.sha256(fingerprint_data.encode()).hexdigest()


def get_system_info() -> Dict[str, Any]:
    return {
        "os_platform": platform.system(),
        "os_release": platform.release(),
        "cpu_count": psutil.cpu_count(logical=True),
        "total_memory_gb": round(psutil.virtual_memory().total / (1024**3), 2),
        "hostname": platform.node(),
        "architecture": platform.machine(),
    }


def get_hardware_metadata() -> Dict[str, Any]:
    """Metadata merged into every validation request when enabled."""
    return {
        "hardware_id": get_hardware_fingerprint(),
        "system_info": get_system_info(),
    }
