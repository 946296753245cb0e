"""Printful catalog sync: snapshot, store, builder, resolver."""
