"""Bluetooth reference data: BlueZ names, result codes and value helpers."""
