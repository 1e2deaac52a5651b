"""Core configuration for the device insights service."""
