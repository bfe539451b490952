"""Sink plugins that connect the shipper core to a host logging pipeline."""
