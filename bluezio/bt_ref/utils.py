"""
Bluetooth utility functions.
"""

import dbus

__all__ = [
    "dbus_to_python",
    "python_to_dbus",
]

# Dictionary entries BlueZ only accepts with a specific integer type
_VARIANT_TYPES = {
    "RSSI": dbus.Int16,
    "Pathloss": dbus.UInt16,
    "offset": dbus.UInt16,
}


def dbus_to_python(data):
    """Convert a value received from dbus-python into plain Python types.

    Byte arrays (``ay``) become :class:`bytes`, dictionaries and their keys
    are converted recursively, structs become tuples. Anything that is not a
    dbus-python type is returned unchanged.
    """
    if isinstance(data, (dbus.String, dbus.ObjectPath, dbus.Signature)):
        data = str(data)
    elif isinstance(data, dbus.Boolean):
        data = bool(data)
    elif isinstance(
        data,
        (
            dbus.Byte,
            dbus.Int16,
            dbus.UInt16,
            dbus.Int32,
            dbus.UInt32,
            dbus.Int64,
            dbus.UInt64,
        ),
    ):
        data = int(data)
    elif isinstance(data, dbus.Double):
        data = float(data)
    elif isinstance(data, dbus.ByteArray):
        data = bytes(data)
    elif isinstance(data, dbus.Array):
        if data.signature == "y":
            data = bytes(int(value) for value in data)
        else:
            data = [dbus_to_python(value) for value in data]
    elif isinstance(data, dbus.Struct):
        data = tuple(dbus_to_python(value) for value in data)
    elif isinstance(data, dbus.Dictionary):
        new_data = dict()
        for key in data.keys():
            new_data[dbus_to_python(key)] = dbus_to_python(data[key])
        data = new_data
    return data


def python_to_dbus(value, key=None):
    """Wrap a plain Python value in the dbus-python type BlueZ expects.

    Parameters
    ----------
    value
        ``bool``, ``int``, ``str``, ``bytes``, list or ``dict`` with string keys
    key : str, optional
        Name of the dictionary entry *value* belongs to; selects the integer
        width for entries such as ``RSSI`` or ``offset``

    Dictionaries become ``a{sv}``, byte strings ``ay`` and lists of strings
    ``as``.
    """
    if key in _VARIANT_TYPES:
        return _VARIANT_TYPES[key](value)
    if isinstance(value, bool):
        return dbus.Boolean(value)
    if isinstance(value, (bytes, bytearray)):
        return dbus.Array([dbus.Byte(byte) for byte in value], signature="y")
    if isinstance(value, str):
        return dbus.String(value)
    if isinstance(value, dict):
        return dbus.Dictionary(
            {str(k): python_to_dbus(v, str(k)) for k, v in value.items()}, signature="sv"
        )
    if isinstance(value, (list, tuple)):
        signature = "s" if all(isinstance(item, str) for item in value) else None
        return dbus.Array([python_to_dbus(item) for item in value], signature=signature)
    return value
