#!/usr/bin/env python3
"""
Constants and defaults shared across mcmctreer.
"""

# Cauchy prior defaults (PAML manual: p = offset, c = scale)
DEFAULT_OFFSET = 0.1
DEFAULT_SCALE = 0.2
DEFAULT_MIN_PROB = 0.0
DEFAULT_MAX_PROB = 0.975
DEFAULT_ESTIMATE_SCALE = True

# Scale search grid: (0.001, 10] in steps of 0.001
SCALE_GRID_START = 0.001
SCALE_GRID_STOP = 10.0
SCALE_GRID_STEP = 1e-3

# Left-tail probabilities below this are treated as a hard minimum
MIN_PROB_THRESHOLD = 1e-7
MIN_PROB_FLOOR = 1e-300

# Output files
DEFAULT_PDF_OUTPUT = "cauchyPlot.pdf"
DEFAULT_MCMCTREE_OUTPUT = "cauchyInput.tre"
DEFAULT_FIGTREE_INPUT = "FigTree.tre"
DEFAULT_DEBUG_LOG = "mcmctreer_debug.log"

# MCMCTree FigTree.tre layout: the tree is the 4th tab/line separated field
FIGTREE_TREE_FIELD = 3
MCMCTREE_FOOTER = "//end of file"

NODE_AGE_COLUMNS = ("mean", "95%_lower", "95%_upper")
PARAMETER_COLUMNS = ("tL", "p", "c", "pL")
