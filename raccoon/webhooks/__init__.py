"""GitLab webhook receiving and decoding."""
