"""
Batch fitting script for maximum-likelihood fits, scans and toy studies.

Usage:
    python mlfit_batch.py --pdf DecayTime --boundary time=0:10 --events 5000 --seed 1 \
        --param gamma=0.7:0.1:2 --scan gamma:0.6:0.8:11 --output out/decay

Notes:
- Data: generated from the PDF at the given parameter values (--events), or
  read from a whitespace or comma separated file with a header line (--data).
- Parameters: --param name=value[:min:max[:type]] with type Free, Fixed or Hidden.
  A missing min:max leaves the parameter unbounded.
- Constraints: --constraint name=value:error (GammaL and GammaObs are derived
  from gamma and deltaGamma).
- Scans: --scan name:min:max:points (repeatable) and
  --scan2d outer:min:max:points,inner:min:max:points.
- Outputs: <output>_fit.txt, <output>_scan_<name>.txt, <output>_scan2d_<outer>_<inner>.txt
  and <output>_toys.txt.
"""

import argparse
import logging
import os
import sys

from mlfit.core.data import DataSetConfiguration, PDFWithData, PhaseSpaceBoundary
from mlfit.core.exceptions import ConfigurationError
from mlfit.core.fitting import (ExternalConstraint, FitFunctionConfiguration,
                                MinimiserConfiguration, OutputConfiguration, ScanParam, ToyStudy,
                                check_input_params, contour_scan, extract_fit_statistics,
                                format_fit_result, format_statistics, get_fit_strategy,
                                list_minimisers, profile_likelihood, pull_statistics, single_scan)
from mlfit.core.parameters import ParameterSet, PhysicsParameter, PARAMETER_TYPES
from mlfit.core.pdfs import get_pdf
from mlfit.utils import log_error, log_info, setup_logger


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Batch maximum-likelihood fitting")

    # Model and data
    p.add_argument("--pdf", required=True, choices=["DecayTime", "UntaggedDecay", "Gaussian", "LinearBackground"], help="PDF to fit")
    p.add_argument("--boundary", action="append", default=[], help="Observable range obs=min:max (repeatable)")
    p.add_argument("--data", default=None, help="Data file (otherwise events are generated)")
    p.add_argument("--events", type=int, default=1000, help="Number of generated events")
    p.add_argument("--seed", type=int, default=None, help="Generator seed")
    p.add_argument("--param", action="append", default=[], help="Parameter name=value[:min:max[:type]] (repeatable)")
    p.add_argument("--constraint", action="append", default=[], help="External constraint name=value:error (repeatable)")

    # Fit
    p.add_argument("--minimiser", default="Minuit", choices=list_minimisers(), help="Minimiser")
    p.add_argument("--strategy", default="Default", choices=["Default", "Petes", "Robs"], help="Fit strategy")
    p.add_argument("--fit-function", default="NegativeLogLikelihood", help="Fit function")
    p.add_argument("--weight", default=None, help="Observable holding event weights")
    p.add_argument("--contour", action="append", default=[], help="Contour x:y:n_sigma (repeatable)")

    # Studies
    p.add_argument("--scan", action="append", default=[], help="1D scan name:min:max:points (repeatable)")
    p.add_argument("--scan2d", action="append", default=[], help="2D scan outer:min:max:points,inner:min:max:points")
    p.add_argument("--toys", type=int, default=0, help="Number of toy fits")

    # Output
    p.add_argument("--output", default="mlfit", help="Output file prefix")
    p.add_argument("--verbosity", type=int, default=0, help="-1 silent, 0 warnings, 1 fit reviews, 2 debug")
    p.add_argument("--log-dir", default=None, help="Directory for the log file")

    return p.parse_args(argv)


def _split(text, separator, count, what):
    parts = text.split(separator)
    if len(parts) != count:
        raise ConfigurationError(f"Cannot parse {what} '{text}'")
    return parts


def _float(text, what):
    try:
        return float(text)
    except ValueError:
        raise ConfigurationError(f"Cannot parse {what} value '{text}'") from None


def parse_boundary(entries):
    boundary = PhaseSpaceBoundary()
    for entry in entries:
        name, limits = _split(entry, "=", 2, "boundary")
        low, high = _split(limits, ":", 2, "boundary")
        boundary.set_continuous(name, _float(low, "boundary"), _float(high, "boundary"))
    return boundary


def parse_param(entry):
    name, definition = _split(entry, "=", 2, "parameter")
    fields = definition.split(":")
    if len(fields) not in (1, 3, 4):
        raise ConfigurationError(f"Cannot parse parameter '{entry}'")
    value = _float(fields[0], "parameter")
    minimum = maximum = 0.0
    if len(fields) >= 3:
        minimum, maximum = _float(fields[1], "parameter"), _float(fields[2], "parameter")
    type = fields[3] if len(fields) == 4 else "Free"
    if type not in PARAMETER_TYPES:
        raise ConfigurationError(f"Unknown parameter type '{type}'. Available: {list(PARAMETER_TYPES)}")
    return PhysicsParameter(name, value, minimum, maximum, type=type)


def parse_constraint(entry):
    name, definition = _split(entry, "=", 2, "constraint")
    value, error = _split(definition, ":", 2, "constraint")
    return ExternalConstraint(name, _float(value, "constraint"), _float(error, "constraint"))


def parse_scan(entry):
    name, low, high, points = _split(entry, ":", 4, "scan")
    try:
        points = int(points)
    except ValueError:
        raise ConfigurationError(f"Cannot parse scan points '{points}'") from None
    return ScanParam(name, _float(low, "scan"), _float(high, "scan"), points)


def build_output_config(args):
    output_config = OutputConfiguration()
    for entry in args.scan:
        output_config.add_scan_param(parse_scan(entry))
    for entry in args.scan2d:
        outer, inner = _split(entry, ",", 2, "2D scan")
        output_config.add_2d_scan(parse_scan(outer), parse_scan(inner))
    for entry in args.contour:
        x_name, y_name, n_sigma = _split(entry, ":", 3, "contour")
        output_config.add_contour_plot(x_name, y_name, int(n_sigma))
    return output_config


def build_fit(args):
    boundary = parse_boundary(args.boundary)
    pdf = get_pdf(args.pdf)
    for name in pdf.get_prototype_data_point():
        if name not in boundary:
            raise ConfigurationError(f"No --boundary given for observable '{name}'")
    if args.data is not None:
        data_config = DataSetConfiguration("File", filename=args.data)
        data_numbers = [0]
    else:
        data_config = DataSetConfiguration("Generate", number_events=args.events, seed=args.seed)
        data_numbers = [args.events]
    parameters = check_input_params(ParameterSet([parse_param(e) for e in args.param]), [pdf], data_numbers)
    pdf_with_data = [PDFWithData(pdf, boundary, data_config)]
    constraints = [parse_constraint(e) for e in args.constraint]
    return parameters, pdf_with_data, constraints


def export_fit(path, result, n_data):
    with open(path, "w") as f:
        f.write(format_fit_result(result))
        f.write("\n\n")
        f.write(format_statistics(extract_fit_statistics(result, n_data)))
        f.write("\n")


def export_scan(path, vector, name):
    values, delta_nll = profile_likelihood(vector, name)
    with open(path, "w") as f:
        f.write(f"{name}\tNLL\tStatus\n")
        for value, nll, status in zip(vector.get_parameter_values(name), vector.get_minimum_values(),
                                      vector.get_fit_statuses()):
            f.write(f"{value:.6e}\t{nll:.10e}\t{status}\n")
    if len(values):
        log_info(f"Scan of {name}: best point {values[delta_nll.argmin()]:.6g}")


def export_scan_2d(path, vectors, outer_name, inner_name):
    with open(path, "w") as f:
        f.write(f"{outer_name}\t{inner_name}\tNLL\tStatus\n")
        for vector in vectors:
            for outer, inner, nll, status in zip(vector.get_parameter_values(outer_name),
                                                 vector.get_parameter_values(inner_name),
                                                 vector.get_minimum_values(),
                                                 vector.get_fit_statuses()):
                f.write(f"{outer:.6e}\t{inner:.6e}\t{nll:.10e}\t{status}\n")


def export_toys(path, vector):
    names = vector.get_all_names()
    with open(path, "w") as f:
        f.write("\t".join(["NLL", "Status", "RealTime", "CPUTime"] + [f"{n}\t{n}_error\t{n}_pull" for n in names]) + "\n")
        columns = [vector.get_minimum_values(), vector.get_fit_statuses(), vector.get_real_times(), vector.get_cpu_times()]
        for name in names:
            columns += [vector.get_parameter_values(name), vector.get_parameter_errors(name), vector.get_parameter_pulls(name)]
        for row in zip(*columns):
            f.write("\t".join(f"{v:.6e}" for v in row) + "\n")
        f.write("\n# Pulls\n")
        for name in names:
            stats = pull_statistics(vector, name)
            f.write(f"# {name}: mean {stats['mean']:.4f} +- {stats['mean_error']:.4f}, "
                    f"width {stats['width']:.4f} +- {stats['width_error']:.4f} ({stats['n']} fits)\n")


def run(args):
    parameters, pdf_with_data, constraints = build_fit(args)
    output_config = build_output_config(args)
    minimiser_config = MinimiserConfiguration(args.minimiser, output_config)
    function_config = FitFunctionConfiguration(args.fit_function, weight_name=args.weight)
    fit = get_fit_strategy(args.strategy)

    directory = os.path.dirname(args.output)
    if directory:
        os.makedirs(directory, exist_ok=True)

    result = fit(minimiser_config, function_config, parameters, pdf_with_data, constraints,
                 verbosity=args.verbosity)
    n_data = sum(entry.get_data_set().get_data_number() for entry in pdf_with_data)
    export_fit(f"{args.output}_fit.txt", result, n_data)
    print(format_fit_result(result))

    for name in output_config.get_scan_names():
        vector = single_scan(minimiser_config, function_config, parameters, pdf_with_data,
                             constraints, output_config, name, args.verbosity)
        export_scan(f"{args.output}_scan_{name}.txt", vector, name)
        print(f"Scanned {name}")

    for outer_name, inner_name in output_config.get_2d_scan_names():
        vectors = contour_scan(minimiser_config, function_config, parameters, pdf_with_data,
                               constraints, output_config, outer_name, inner_name, args.verbosity)
        export_scan_2d(f"{args.output}_scan2d_{outer_name}_{inner_name}.txt", vectors,
                       outer_name, inner_name)
        print(f"Scanned {outer_name} vs {inner_name}")

    if args.toys > 0:
        study = ToyStudy(minimiser_config, function_config, parameters, pdf_with_data, constraints,
                         number_studies=args.toys, strategy=args.strategy, verbosity=args.verbosity)
        export_toys(f"{args.output}_toys.txt", study.do_toy_study())
        print(f"Ran {args.toys} toy fits")

    return result


def main(argv=None):
    args = parse_args(argv)
    setup_logger(args.log_dir, logging.INFO)
    try:
        run(args)
    except ConfigurationError as e:
        log_error("Invalid configuration", e)
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
