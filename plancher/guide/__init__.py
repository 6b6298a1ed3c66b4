"""Interactive page guide: per-page step table and its state machine."""
