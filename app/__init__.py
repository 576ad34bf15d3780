"""Campus cab pooling backend."""
