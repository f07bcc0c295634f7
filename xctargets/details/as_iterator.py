from typing import List, Set, Tuple, Union, Iterator


# Make scalar string or container of strings iterable...
def str_iter(strings: Union[str, List[str], Set[str], Tuple[str]]) -> Iterator[str]:
    if isinstance(strings, (list, set, tuple)):
        for v in strings:
            assert isinstance(v, str)
            yield v
    else:
        assert isinstance(strings, str)
        yield strings


# Build setting values are either a single string or a list of strings,
# Xcode accepts both for the search path settings...
def setting_iter(value: Union[str, List[str], Tuple[str]]) -> Iterator[str]:
    if isinstance(value, (list, tuple)):
        for v in value:
            yield str(v)
    elif value:
        yield str(value)
