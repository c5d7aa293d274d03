from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

PARTITION_TABLES = {"auto", "gpt", "msdos"}
DATA_FILESYSTEMS = {"exfat", "vfat"}


@dataclass(frozen=True)
class UsbConfig:
    raw: Dict[str, Any]

    @property
    def device(self) -> Optional[str]:
        v = (self.raw.get("usb") or {}).get("device")
        return str(v) if v else None

    @property
    def partition_table(self) -> str:
        return str(((self.raw.get("usb") or {}).get("partition_table")) or "auto")

    @property
    def esp_size_mib(self) -> int:
        return int(((self.raw.get("usb") or {}).get("esp_size_mib")) or 512)

    @property
    def esp_label(self) -> str:
        return str(((self.raw.get("usb") or {}).get("esp_label")) or "ESP")

    @property
    def data_fs(self) -> str:
        return str(((self.raw.get("usb") or {}).get("data_fs")) or "exfat")

    @property
    def data_label(self) -> str:
        return str(((self.raw.get("usb") or {}).get("data_label")) or "Multiboot")

    @property
    def iso_dir(self) -> str:
        return str(((self.raw.get("isos") or {}).get("dir")) or "isos")

    @property
    def copy_isos(self) -> bool:
        v = (self.raw.get("isos") or {}).get("copy")
        return True if v is None else bool(v)

    @property
    def grub_template(self) -> Optional[str]:
        v = (self.raw.get("grub") or {}).get("template")
        return str(v) if v else None

    @property
    def dry_run(self) -> bool:
        return bool(self.raw.get("dry_run", False))

    def validate(self) -> "UsbConfig":
        if self.partition_table not in PARTITION_TABLES:
            raise ValueError(f"usb.partition_table must be one of {sorted(PARTITION_TABLES)}")
        if self.data_fs not in DATA_FILESYSTEMS:
            raise ValueError(f"usb.data_fs must be one of {sorted(DATA_FILESYSTEMS)}")
        if self.esp_size_mib < 32:
            raise ValueError("usb.esp_size_mib must be at least 32")
        return self

    def as_state_config(self) -> Dict[str, Any]:
        """Flatten into the keys used under state['config']."""

        return {
            "device": self.device,
            "iso_dir": self.iso_dir,
            "partition_table": self.partition_table,
            "esp_size_mib": self.esp_size_mib,
            "esp_label": self.esp_label,
            "data_fs": self.data_fs,
            "data_label": self.data_label,
            "copy_isos": self.copy_isos,
            "grub_template": self.grub_template,
            "dry_run": self.dry_run,
        }


def load_usb_config(path: str) -> UsbConfig:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(path)

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError("USB config must be YAML")

    try:
        import yaml  # type: ignore
    except Exception as e:
        raise RuntimeError("PyYAML is required to read the USB config") from e

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError("USB config must contain a mapping/object")

    return UsbConfig(raw=raw).validate()
