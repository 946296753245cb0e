"""Order models, dedupe, submission and the per-order relay."""
