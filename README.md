# srcfind

Bookkeeping and reliability measurement for detections found by linking
pixels in a data cube.

## What it does

A linker walks through a cube and records each detection in a
`srcfind.detections.LinkerPar` container. Each entry is a `Detection` and
holds:

- its label and its inclusive bounding box (`BoundingBox`);
- the number of pixels;
- the minimum, maximum and summed flux;
- the quality flags (1 = spatial edge, 2 = spectral edge, 4 = blanked
  pixels, 8 = other sources);
- the filling factor of the bounding box;
- running moments of the flux values. `Detection.std()`,
  `Detection.skewness()` and `Detection.kurtosis()` are derived from them.

From that container you can:

- build a source catalogue with `srcfind.catalog.make_catalog`. It can
  keep only the detections listed in a `LabelMap` and relabel them;
- build separate parameter catalogues of negative and positive detections
  with `srcfind.catalog.make_rel_catalogs`;
- measure the reliability of every positive detection with
  `srcfind.reliability.reliability`.

## Installation

```
pip install .
```

The only runtime dependency is numpy.

## Recording detections

```python
from srcfind.detections import LinkerPar

linker = LinkerPar(verbose=False)

# First pixel of detection 1, then more pixels belonging to it
linker.push(1, 10, 20, 5, 0.8, 0)
linker.update(11, 20, 5, 1.2, 0)
linker.update(11, 21, 6, 0.9, 0)

len(linker)                 # 1
linker.get_npix(1)          # 3
linker.get_obj_size(1, 0)   # 2, the extent along x
linker.get_bbox(1)          # BoundingBox(x_min=10, x_max=11, y_min=20, y_max=21, z_min=5, z_max=6)
print(linker.info())        # number of detections and estimated memory use
```

These methods always act on the most recently pushed detection:

- `update(x, y, z, flux, flag)` adds a pixel to it.
- `update_flag(flag)` ORs a flag into it.
- `pop()` removes it and returns it.

Lookups by label return the first detection carrying that label:

- `detection`, `get_npix`, `get_flux`, `get_rel`, `get_bbox` and
  `get_obj_size` each take a label.
- `get_label(index)` goes the other way: it returns the label at a
  position in the list.

These calls raise `srcfind.detections.LinkerError`:

- any label lookup whose label is missing;
- `get_obj_size` with an axis other than 0, 1 or 2;
- `get_label` with an index out of range;
- `pop`, `update` or `update_flag` on an empty container.

## Catalogues

```python
from srcfind.catalog import make_catalog, make_rel_catalogs
from srcfind.label_map import LabelMap

keep = LabelMap()
keep.push(1, 1)             # keep detection 1 as number 1
catalogue = make_catalog(linker, keep, "Jy/beam")

src = catalogue[0]
src.identifier              # "1", the original label
src["id"]                   # 1, the mapped label
src["n_pix"]                # 3

negative, positive = make_rel_catalogs(linker, "Jy/beam")
```

A catalogue is a list of `Source` objects. Each `Source` holds an ordered
set of `Parameter` entries with a name, value, unit and UCD. Look a value
up with `src[name]`. Add or replace a parameter with
`src.add(name, value, unit, ucd)`.

If the `LabelMap` is empty or `None`, every detection is included under
its own label. A `LabelMap` may hold the same key more than once; lookups
return the most recent value.

## Reliability

Reliability needs both positive and negative detections. The parameter
space is a sequence of `srcfind.relpar.RelPar` members:

- `PEAK`, `SUM`, `MEAN`, `CHAN`, `PIX`, `FILL`, `STD`, `SKEW`, `KURT`.

Instead of members you may pass names such as `"sum"` or their numbers.
`RelPar.parse` performs the conversion.

```python
from srcfind.relpar import RelPar
from srcfind.reliability import reliability

result = reliability(
    linker,
    [RelPar.PEAK, RelPar.SUM, RelPar.MEAN],
    scale_kernel=0.4,
    fmin=15.0,
    minpix=0,
    rel_cat=None,
    want_skellam=True,
)
result.covariance       # kernel covariance matrix
result.scale_kernel     # kernel scale factor used
result.skellam          # Skellam values at the negative detections
linker.get_rel(1)       # reliability of detection 1
```

### How the kernel is built

The kernel is a Gaussian whose covariance is that of the negative
detections, scaled by `scale_kernel` squared. A non-positive
`scale_kernel` falls back to 0.4.

### Which detections are measured

- A positive detection gets a reliability only if both hold:
  - `sum / sqrt(n_pix)` is above `fmin`;
  - it has more than `minpix` pixels.
- Its reliability is `(P - N) / P`, where P and N are the kernel density
  sums of positive and negative detections at its position. It is 0 when
  N exceeds P.
- `rel_cat` is an optional iterable of (x, y) pixel positions. Negative
  detections whose (x, y) bounding box contains one of them are left out.

### Automatic kernel scale

With `autokernel=True`, which requires `want_skellam=True`, the scale
factor is searched. The search starts at 0.1 and grows until either:

- the absolute median of the Skellam array drops to `tolerance`, or
- `iterations` steps have run.

If the search does not converge, `scale_kernel` is used.

### Progress and errors

Progress and warnings are written to the `srcfind.reliability` logger.
A `LinkerError` is raised in any of these cases:

- there are no detections;
- there are no positive detections;
- there are no negative detections;
- the covariance matrix cannot be inverted.

### Kernel density tools

The lower-level tools live in `srcfind.kde`:

- `covariance(data)`, the covariance normalised by the number of points;
- `prob_density(covar_inv, vector, scale)`;
- `calculate_skellam(covar_inv, pos, neg, scale)`, which returns
  `(P - N) / sqrt(P + N)` at each negative detection.

## What it does not do

- It does not read or write data cubes or FITS files.
- It does not do the linking itself. The caller feeds pixels to
  `LinkerPar`.
- It does not write catalogues to files. Catalogues are plain Python
  lists of `Source` objects.
- It draws no diagnostic plots of the reliability parameter space or of
  the Skellam distribution.
- It provides no command-line program.

## Running the tests

```
pip install .[test]
pytest
```