class ConfigurationMismatch(ValueError):
    """
    Model configuration and model outputs do not fit together.

    Raised for structural problems only (label count vs `dimensions - 5`,
    declared outputs missing from the engine result, raw output sizes that do
    not match the configured grid). Low scores and degenerate boxes are never
    errors; they are dropped during decoding.
    """
