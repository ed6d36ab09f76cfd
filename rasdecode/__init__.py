"""Decoders for Intel machine checks and HiSilicon and Ampere vendor error sections."""

__version__ = "0.1.0"