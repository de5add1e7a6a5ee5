from setuptools import setup, find_packages

# Check if PyGObject (gi) is already available system-wide
# This prevents pip from trying to build PyGObject from source when it's
# already installed via system package manager (apt, pacman, etc.)
_HAS_PYGOBJECT = False
try:
    import gi
    gi.require_version('GLib', '2.0')
    from gi.repository import GLib
    _HAS_PYGOBJECT = True
except (ImportError, ValueError, AttributeError):
    _HAS_PYGOBJECT = False

# Base requirements - always needed
install_requires = [
    "dbus-python>=1.2.0",
    "PyYAML>=6.0",
    "xmltodict>=0.14.2",
]

extras_require = {
    "test": ["pytest>=8.0.0"],
}

# PyGObject drives the GLib main loop behind BluetoothSession.new().
# If not system-installed, add it to install_requires; if it is, keep it
# optional for users who prefer to manage it via pip.
if not _HAS_PYGOBJECT:
    install_requires.append("PyGObject>=3.48.0")
    extras_require["mainloop"] = []
else:
    extras_require["mainloop"] = ["PyGObject>=3.48.0"]

setup(
    name="bluezio",
    version="0.1.0",
    description="Typed access to the BlueZ Bluetooth daemon over D-Bus",
    packages=find_packages(include=["bluezio", "bluezio.*"]),
    install_requires=install_requires,
    extras_require=extras_require,
    python_requires='>=3.8',
)
