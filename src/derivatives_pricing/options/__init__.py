"""
Options: payoffs, analytic reference pricing and Monte Carlo simulation.
"""
