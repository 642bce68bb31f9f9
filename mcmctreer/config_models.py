#!/usr/bin/env python3
"""
Configuration models for mcmctreer using Pydantic for validation.

This module defines the structure and validation rules for mcmctreer
configuration files, supporting both YAML and TOML formats. Each clade
calibration is a fully specified record.
"""

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, validator

from .core.constants import (
    DEFAULT_ESTIMATE_SCALE,
    DEFAULT_FIGTREE_INPUT,
    DEFAULT_MAX_PROB,
    DEFAULT_MCMCTREE_OUTPUT,
    DEFAULT_MIN_PROB,
    DEFAULT_OFFSET,
    DEFAULT_PDF_OUTPUT,
    DEFAULT_SCALE,
)


class CladeCalibration(BaseModel):
    """Age bounds and Cauchy settings for one calibrated clade."""

    name: Optional[str] = Field(
        default=None, description="Label for this calibration (defaults to node_<n>)"
    )
    taxa: List[str] = Field(
        ..., min_length=2, description="Tip names whose common ancestor is calibrated"
    )
    min_age: float = Field(..., gt=0, description="Minimum age bound (tL)")
    max_age: float = Field(..., gt=0, description="Maximum age bound")
    min_prob: float = Field(
        default=DEFAULT_MIN_PROB, ge=0, lt=1,
        description="Probability of the left tail (0 gives a hard minimum)"
    )
    max_prob: float = Field(
        default=DEFAULT_MAX_PROB, gt=0, lt=1,
        description="Probability mass below the maximum age"
    )
    offset: float = Field(
        default=DEFAULT_OFFSET, ge=0, description="Offset of the Cauchy distribution (p)"
    )
    scale: float = Field(
        default=DEFAULT_SCALE, gt=0, description="Scale of the Cauchy distribution (c)"
    )
    estimate_scale: bool = Field(
        default=DEFAULT_ESTIMATE_SCALE,
        description="Search for the scale that puts max_prob below max_age"
    )

    @validator('taxa')
    def validate_taxa(cls, v):
        """Reject repeated tip names."""
        if len(set(v)) != len(v):
            raise ValueError(f"Repeated tip names in clade definition: {v}")
        return v

    @validator('max_age')
    def validate_max_age(cls, v, values):
        """Maximum age must lie above the minimum age."""
        min_age = values.get('min_age')
        if min_age is not None and v <= min_age:
            raise ValueError(f"max_age ({v}) must be greater than min_age ({min_age})")
        return v

    @validator('max_prob')
    def validate_max_prob(cls, v, values):
        """The right bound must carry more mass than the left one."""
        min_prob = values.get('min_prob')
        if min_prob is not None and v <= min_prob:
            raise ValueError(f"max_prob ({v}) must be greater than min_prob ({min_prob})")
        return v


class ReadConfig(BaseModel):
    """Settings for reading MCMCTree output."""

    input_file: Path = Field(
        default=Path(DEFAULT_FIGTREE_INPUT), description="FigTree.tre written by MCMCTree"
    )
    force_ultrametric: bool = Field(
        default=True, description="Extend tip branches so the tree is ultrametric"
    )
    tree_output: Optional[Path] = Field(
        default=None, description="Write the dated tree in Newick format here"
    )
    table_output: Optional[Path] = Field(
        default=None, description="Write the node age table here"
    )

    @validator('input_file')
    def validate_input_file(cls, v):
        """Validate that the input file exists."""
        if not Path(v).exists():
            raise ValueError(f"MCMCTree output file not found: {v}")
        return v


class CauchyConfig(BaseModel):
    """Settings for estimating Cauchy calibrations."""

    tree_file: Path = Field(..., description="Fully resolved tree in Newick format")
    calibrations: List[CladeCalibration] = Field(
        ..., min_length=1, description="One entry per calibrated clade"
    )
    plot: bool = Field(default=False, description="Plot approximate densities to PDF")
    pdf_output: Path = Field(
        default=Path(DEFAULT_PDF_OUTPUT), description="PDF file for density plots"
    )
    write_mcmctree: bool = Field(
        default=False, description="Write the constraint tree for MCMCTree"
    )
    mcmctree_file: Path = Field(
        default=Path(DEFAULT_MCMCTREE_OUTPUT), description="Output path of the constraint tree"
    )

    @validator('tree_file')
    def validate_tree_file(cls, v):
        """Validate that the tree file exists."""
        if not Path(v).exists():
            raise ValueError(f"Tree file not found: {v}")
        return v


class MCMCTreeRConfig(BaseModel):
    """Main mcmctreer configuration model."""

    model_config = ConfigDict(
        extra='forbid',  # Don't allow extra fields
        validate_assignment=True,
    )

    debug: bool = Field(default=False, description="Enable debug logging")
    read: Optional[ReadConfig] = None
    cauchy: Optional[CauchyConfig] = None
