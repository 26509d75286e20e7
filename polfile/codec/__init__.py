"""Binary codecs for policy files.

- values: per-kind coercion, equality and data-field encoding
- pol_format: the registry.pol ("PReg") container: header and records
"""
