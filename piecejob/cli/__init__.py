"""PieceJob command-line interface."""
