from bikeshare.modeling.splitting import Split, initial_split
from bikeshare.modeling.recipe import (
    CorrelationFilter,
    DropColumns,
    DummyEncoder,
    FittedRecipe,
    InteractionExpander,
    NearZeroVarianceFilter,
    Normalizer,
    Recipe,
)
from bikeshare.modeling.model_spec import (
    TUNE,
    BoostTree,
    LinearReg,
    ModelSpec,
    RandForest,
    boost_tree,
    linear_reg,
    rand_forest,
)
from bikeshare.modeling.grid import (
    PARAMETER_DEFAULTS,
    Candidate,
    ParamRange,
    grid_for_spec,
    random_grid,
    regular_grid,
)
from bikeshare.modeling.resampling import Resample, Resamples, vfold_cv
from bikeshare.modeling.metrics import Metric, MetricSet
from bikeshare.modeling.workflow import FittedWorkflow, Workflow
from bikeshare.modeling.tuning import TuneControl, TuneResults, fit_resamples, tune_grid
from bikeshare.modeling.finalize import LastFitResult, finalize_workflow, last_fit, refit, select_best
