"""High-priority Arch Wiki pages with common troubleshooting content."""

from __future__ import annotations

from typing import List, Optional, Sequence

from .models import WikiPageSpec

WIKI_BASE_URL = "https://wiki.archlinux.org/title/"


def _page(title: str, priority: int, path: Optional[str] = None) -> WikiPageSpec:
    return WikiPageSpec(title=title, priority=priority, url=WIKI_BASE_URL + (path or title))


ARCH_WIKI_PAGES: Sequence[WikiPageSpec] = (
    # Core troubleshooting
    _page("General_troubleshooting", 10),
    _page("Installation_guide", 10),
    _page("System_maintenance", 9),
    # Package management
    _page("Pacman", 9),
    _page("AUR", 8, "Arch_User_Repository"),
    _page("makepkg", 8, "Makepkg"),
    # Network
    _page("NetworkManager", 8),
    _page("Network_configuration", 7),
    _page("Wireless_network_configuration", 7),
    _page("OpenVPN", 6),
    # Graphics
    _page("Xorg", 8),
    _page("NVIDIA", 7),
    _page("NVIDIA_troubleshooting", 7, "NVIDIA/Troubleshooting"),
    _page("AMDGPU", 7),
    _page("Intel_graphics", 6),
    _page("Wayland", 6),
    # Audio
    _page("Advanced_Linux_Sound_Architecture", 7),
    _page("PulseAudio", 6),
    _page("PulseAudio_troubleshooting", 6, "PulseAudio/Troubleshooting"),
    _page("PipeWire", 6),
    # Boot / system
    _page("GRUB", 7),
    _page("Systemd", 7),
    _page("Kernel_parameters", 6),
    _page("Fstab", 6),
    _page("Arch_boot_process", 6),
    # Hardware
    _page("Bluetooth", 6),
    _page("Power_management", 5),
    _page("Laptop", 5),
    _page("Hardware_video_acceleration", 5),
    # Desktop environments
    _page("GNOME", 6),
    _page("GNOME_troubleshooting", 6, "GNOME/Troubleshooting"),
    _page("KDE", 5),
    _page("Xfce", 5),
    # Gaming
    _page("Steam", 5),
    _page("Steam_troubleshooting", 5, "Steam/Troubleshooting"),
    _page("Gaming", 4),
    # Services & virtualization
    _page("OpenSSH", 5),
    _page("Docker", 4),
    _page("VirtualBox", 4),
    # Printing & multimedia
    _page("CUPS", 4),
    _page("CUPS_troubleshooting", 4, "CUPS/Troubleshooting"),
    _page("Firefox", 3),
    _page("Chromium", 3),
    # File systems & storage
    _page("File_systems", 4),
    _page("USB_storage_devices", 3),
    _page("Solid_state_drive", 3),
)


def order_pages(pages: Sequence[WikiPageSpec], limit: Optional[int] = None) -> List[WikiPageSpec]:
    """
    Sort pages by descending priority, keeping catalog order among ties.

    A positive ``limit`` truncates the sorted list.
    """
    ordered = sorted(pages, key=lambda page: -page.priority)
    if limit is not None and 0 < limit < len(ordered):
        ordered = ordered[:limit]
    return ordered
