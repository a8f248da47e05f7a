"""Monitor loops and the computations behind them."""
