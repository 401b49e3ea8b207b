"""Clone core — metadata store, artifact copier, registry and reconciler."""
