"""Feature modules of the EasyLearn backend."""
