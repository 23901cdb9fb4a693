"""Built-in plugin loaded before any workspace plugin."""
