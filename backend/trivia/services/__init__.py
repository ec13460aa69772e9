"""Collaborators consumed by the multiplayer core: the question bank and
score history. Both sit behind small interfaces so rooms never touch SQL."""
