"""Core components: log containers, record codec and the MAVLink wire codec."""
