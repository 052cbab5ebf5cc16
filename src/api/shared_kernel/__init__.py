"""Shared Kernel module.

Components every bounded context may depend on: the ``Status`` result
wrapper, the data-key vocabulary of multi-tenancy and the observation
context carried by domain probes. Nothing here may import a bounded
context or the infrastructure layer.
"""
