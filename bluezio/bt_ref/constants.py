"""
Core constants for bluezio.

D-Bus and BlueZ names, object-path segment prefixes and the RESULT_* status
codes carried by :class:`bluezio.core.errors.BluetoothError`.
"""

# D-Bus Core Constants
DBUS_PROPERTIES = "org.freedesktop.DBus.Properties"
DBUS_OM_IFACE = "org.freedesktop.DBus.ObjectManager"
INTROSPECT_INTERFACE = "org.freedesktop.DBus.Introspectable"

# BlueZ Core Constants
BLUEZ_SERVICE_NAME = "org.bluez"
BLUEZ_ROOT = "/org/bluez"
BLUEZ_NAMESPACE = BLUEZ_ROOT + "/"

# BlueZ Interface Constants
ADAPTER_INTERFACE = BLUEZ_SERVICE_NAME + ".Adapter1"
DEVICE_INTERFACE = BLUEZ_SERVICE_NAME + ".Device1"

# GATT Interface Constants
GATT_SERVICE_INTERFACE = BLUEZ_SERVICE_NAME + ".GattService1"
GATT_CHARACTERISTIC_INTERFACE = BLUEZ_SERVICE_NAME + ".GattCharacteristic1"
GATT_DESCRIPTOR_INTERFACE = BLUEZ_SERVICE_NAME + ".GattDescriptor1"

# Signal names
SIGNAL_PROPERTIES_CHANGED = "PropertiesChanged"
SIGNAL_INTERFACES_ADDED = "InterfacesAdded"
SIGNAL_INTERFACES_REMOVED = "InterfacesRemoved"

# Object-path segment prefixes, one per level of the tree
INTROSPECT_ADAPTER_STRING = "hci"
INTROSPECT_DEVICE_STRING = "dev_"
INTROSPECT_SERVICE_STRING = "service"
INTROSPECT_CHARACTERISTIC_STRING = "char"
INTROSPECT_DESCRIPTOR_STRING = "desc"

# Result/Error Codes
RESULT_ERR = 1
RESULT_ERR_NOT_CONNECTED = 2
RESULT_ERR_NOT_SUPPORTED = 3
RESULT_ERR_ACCESS_DENIED = 6
RESULT_ERR_BAD_ARGS = 8
RESULT_ERR_NOT_FOUND = 9
RESULT_ERR_METHOD_SIGNATURE_NOT_EXIST = 10
RESULT_ERR_NO_REPLY = 14
RESULT_ERR_ACTION_IN_PROGRESS = 16
RESULT_ERR_UNKNOWN_SERVCE = 17
RESULT_ERR_UNKNOWN_OBJECT = 18
RESULT_ERR_NOT_PERMITTED = 22
RESULT_ERR_NOT_AUTHORIZED = 23

# Decode / parse failures raised by the property decoder and walker
RESULT_ERR_NO_ADAPTERS = 30
RESULT_ERR_INTROSPECTION = 31
RESULT_ERR_UUID_NOT_FOUND = 32
RESULT_ERR_UUID_PARSE = 33
RESULT_ERR_FLAG_PARSE = 34
RESULT_ERR_PROPERTY_MISSING = 35
RESULT_ERR_CONNECTION_LOST = 36

# Base UUID Constants
BASE_UUID__BLUETOOTH = "00000000-0000-1000-8000-00805f9b34fb"
