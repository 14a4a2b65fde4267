import sys
from pathlib import Path

import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from mlfit.core.data import (DataSetConfiguration, PDFWithData, PhaseSpaceBoundary,
                             generate_toy_data)
from mlfit.core.fitting import FitFunctionConfiguration, MinimiserConfiguration
from mlfit.core.fitting.minimiser import BaseMinimiser, MINIMISER_REGISTRY
from mlfit.core.parameters import ParameterSet, PhysicsParameter
from mlfit.core.pdfs import DecayTime, UntaggedDecay


class Script:
    """
    Outcomes handed out to ScriptedMinimiser, one per fit.

    An outcome is a fit status, a (status, minimum) tuple or an exception
    to raise. Once the outcomes run out every fit converges.
    """

    def __init__(self):
        self.outcomes = []
        self.calls = []

    def next_outcome(self):
        if self.outcomes:
            return self.outcomes.pop(0)
        return 3

    def values(self, name):
        return [call[name][0] for call in self.calls]


class ScriptedMinimiser(BaseMinimiser):
    """Reports the starting point as the minimum, with a scripted status."""

    def __init__(self, script, n_parameters=0, **options):
        super().__init__(n_parameters, **options)
        self.script = script

    def _minimise(self, fit_function, free):
        parameter_set = fit_function.get_parameter_set()
        self.script.calls.append({p.name: (p.get_value(), p.get_type()) for p in parameter_set})
        outcome = self.script.next_outcome()
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, tuple):
            status, minimum = outcome
        else:
            status, minimum = outcome, fit_function.evaluate()
        best = [parameter_set.get_physics_parameter(name).get_value() for name in free]
        return self._build_result(fit_function, free, best, [0.1] * len(free), minimum, status)


@pytest.fixture
def script(monkeypatch):
    script = Script()
    monkeypatch.setitem(MINIMISER_REGISTRY, 'Scripted',
                        lambda n_parameters=0, **options: ScriptedMinimiser(script, n_parameters, **options))
    return script


@pytest.fixture
def time_boundary():
    boundary = PhaseSpaceBoundary()
    boundary.set_continuous('time', 0.0, 10.0, 'ps')
    return boundary


@pytest.fixture
def decay_parameters():
    return ParameterSet([PhysicsParameter('gamma', 0.7, 0.1, 2.0, unit='ps^-1')])


@pytest.fixture
def decay_data(time_boundary, decay_parameters):
    """2000 DecayTime events at gamma = 0.7."""
    pdf = DecayTime()
    pdf.set_physics_parameters(decay_parameters)
    return generate_toy_data(pdf, time_boundary, 2000, rng=np.random.default_rng(11))


@pytest.fixture
def decay_fit(time_boundary, decay_parameters, decay_data):
    """(parameters, pdf_with_data) of a DecayTime fit to in-memory events."""
    entry = PDFWithData(DecayTime(), time_boundary, DataSetConfiguration('Memory', data_set=decay_data))
    return decay_parameters, [entry]


@pytest.fixture
def untagged_fit(time_boundary):
    """(parameters, pdf_with_data) of an UntaggedDecay fit with physics phases in the set."""
    parameters = ParameterSet([
        PhysicsParameter('gamma', 0.66),
        PhysicsParameter('deltaGamma', 0.1),
        PhysicsParameter('Aperp_sq', 0.25, type='Fixed'),
        PhysicsParameter('delta_para', 0.5),
        PhysicsParameter('delta_perp', 2.0),
        PhysicsParameter('Phi_s', 0.2),
    ])
    pdf = UntaggedDecay()
    pdf.set_physics_parameters(parameters)
    data = generate_toy_data(pdf, time_boundary, 500, rng=np.random.default_rng(5))
    entry = PDFWithData(pdf, time_boundary, DataSetConfiguration('Memory', data_set=data))
    return parameters, [entry]


@pytest.fixture
def scripted_config():
    return MinimiserConfiguration('Scripted')


@pytest.fixture
def function_config():
    config = FitFunctionConfiguration()
    config.set_integrator_test(False)
    return config
