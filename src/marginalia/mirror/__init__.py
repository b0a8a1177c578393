"""Side-channel mirror: notes as host-native file comments."""

from marginalia.mirror.commands import CommandResult, CommandRunner
from marginalia.mirror.profiles import DarwinProfile, HostProfile, XdgProfile, build_profile
from marginalia.mirror.side_channel import DisabledMirror, SideChannelMirror

__all__ = [
    "CommandResult",
    "CommandRunner",
    "DarwinProfile",
    "DisabledMirror",
    "HostProfile",
    "SideChannelMirror",
    "XdgProfile",
    "build_profile",
]
