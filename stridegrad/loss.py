def mse(prediction, target):
    """Mean squared error, built from tracked ops so it can be differentiated."""
    diff = prediction - target
    return (diff * diff).sum() / float(diff.n_elements)
