"""
Toy studies: repeated generate-and-fit cycles.
"""

from .assembler import check_input_params, generation_parameters, get_fit_strategy
from .results import FitResultVector
from ...utils import log_info


class ToyStudy:
    """
    Generate fresh events and refit them, many times.

    Parameters
    ----------
    minimiser_config : MinimiserConfiguration
        Minimiser to use
    function_config : FitFunctionConfiguration
        Fit function to use
    parameters : ParameterSet
        Starting point of every fit, and generation values unless
        `generation_values` overrides them
    pdf_with_data : list of PDFWithData
        Fit components, normally with 'Generate' data sources
    constraints : list of ExternalConstraint, optional
        External constraints
    number_studies : int
        Number of toy fits
    strategy : str
        Registered fit strategy ('Default', 'Petes' or 'Robs')
    verbosity : int
        Passed to every fit
    generation_values : ParameterSet, optional
        Values to generate at, for the parameters it holds
    """

    def __init__(self, minimiser_config, function_config, parameters, pdf_with_data, constraints=(),
                 number_studies=1, strategy='Default', verbosity=0, generation_values=None):
        self.minimiser_config = minimiser_config
        self.function_config = function_config
        self.pdf_with_data = list(pdf_with_data)
        self.parameters = check_input_params(
            parameters, [entry.get_pdf() for entry in self.pdf_with_data],
            [entry.data_config.number_events for entry in self.pdf_with_data])
        self.generation_values = generation_values if generation_values is not None else self.parameters
        self.constraints = list(constraints or [])
        self.number_studies = int(number_studies)
        self.fit = get_fit_strategy(strategy)
        self.verbosity = verbosity

    def do_toy_study(self):
        """
        Run every toy fit.

        Returns
        -------
        FitResultVector
            One result per toy, failed fits included
        """
        results = FitResultVector(self.parameters.get_all_names())
        generation = generation_parameters(self.parameters, self.generation_values)
        for study in range(self.number_studies):
            log_info(f"Toy study {study + 1} of {self.number_studies}")
            for entry in self.pdf_with_data:
                entry.clear_data()
                entry.set_physics_parameters(generation)
                entry.get_data_set()
            results.start_stopwatch()
            result = self.fit(self.minimiser_config, self.function_config, self.parameters,
                              self.pdf_with_data, self.constraints, verbosity=self.verbosity)
            results.add_fit_result(result)
        return results
