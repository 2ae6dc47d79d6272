"""Memory location consumers of project resolution.

    translation.py        memories_mode -> physical path, basic-memory config sync
    worktree_override.py  CODE-mode override for worktree-resolved sessions
"""
