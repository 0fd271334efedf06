"""Impact Lab: asteroid impact-effects simulator."""
