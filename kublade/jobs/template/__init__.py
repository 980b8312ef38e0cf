"""Template jobs: the git import dispatcher and its per-template action."""
