"""Admin dashboard API for cohort-based wellness challenges."""
