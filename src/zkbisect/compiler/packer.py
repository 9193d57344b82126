"""Greedy partition of a circuit into chunks that fit the ceilings of the chain."""

import logging
from dataclasses import dataclass
from functools import cached_property

from zkbisect.circuit.circuit import Circuit
from zkbisect.compiler.chunk_compiler import Chunk, ChunkCompiler
from zkbisect.compiler.folding import fold_constants
from zkbisect.errors import CompilationOverflow
from zkbisect.parameters import ChainParameters

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Program:
    """A circuit compiled into an ordered sequence of chunks.

    Boundary `b` (for `b` in `0, .., N`) is the point before chunk `b`; boundary `N` is the end of the program.

    Attributes:
        circuit (Circuit): The compiled circuit.
        chain_parameters (ChainParameters): The ceilings the chunks fit in.
        chunks (tuple[Chunk, ...]): The chunks, in execution order.
    """

    circuit: Circuit
    chain_parameters: ChainParameters
    chunks: tuple[Chunk, ...]

    def __len__(self):
        return len(self.chunks)

    @property
    def n_chunks(self) -> int:
        return len(self.chunks)

    def boundary_operation(self, boundary: int) -> int:
        """Return the index of the first operation after `boundary`."""
        self._check_boundary(boundary)
        if boundary == len(self.chunks):
            return len(self.circuit.operations)
        return self.chunks[boundary].start

    @cached_property
    def _compiler(self) -> ChunkCompiler:
        return ChunkCompiler(self.circuit, self.chain_parameters)

    @cached_property
    def _live_sets(self) -> tuple[tuple[int, ...], ...]:
        return tuple(
            self._compiler.live_wires_at(self.boundary_operation(boundary)) for boundary in range(len(self.chunks) + 1)
        )

    def live_wires(self, boundary: int) -> tuple[int, ...]:
        """Return the wires live at `boundary`, ascending.

        A wire is live at `boundary` if it is available before chunk `boundary` (a circuit input or the output of
        an earlier chunk) and it is read by a later chunk or it is a circuit output.
        """
        self._check_boundary(boundary)
        return self._live_sets[boundary]

    def bit_widths(self, boundary: int) -> tuple[int, ...]:
        """Return the bit widths of the wires live at `boundary`, in the order of `live_wires`."""
        return tuple(self.circuit.bit_width(wire) for wire in self.live_wires(boundary))

    def boundary_chunk(self, index: int) -> Chunk:
        """Compile chunk `index` against the full boundary layouts.

        The returned chunk reads every wire live at boundary `index` and leaves every wire live at boundary
        `index + 1`, so that the values of a boundary state can be fed to it directly.
        """
        chunk = self._chunk(index)
        return self._compiler.compile(
            chunk.start,
            chunk.end,
            index=index,
            entry_wires=self.live_wires(index),
            exit_wires=self.live_wires(index + 1),
        )

    def disprove_chunk(self, index: int, entry_digest: bytes, exit_digest: bytes) -> Chunk:
        """Compile the program disproving chunk `index`, see `ChunkCompiler.compile_disprove`.

        Args:
            index (int): The index of the chunk.
            entry_digest (bytes): The committed digest of boundary `index`.
            exit_digest (bytes): The committed digest of boundary `index + 1`.
        """
        chunk = self._chunk(index)
        return self._compiler.compile_disprove(
            chunk.start, chunk.end, index=index, entry_digest=entry_digest, exit_digest=exit_digest
        )

    def _chunk(self, index: int) -> Chunk:
        if not 0 <= index < len(self.chunks):
            msg = f"Chunk index out of range: index: {index}, number of chunks: {len(self.chunks)}"
            raise ValueError(msg)
        return self.chunks[index]

    def _check_boundary(self, boundary: int):
        if not 0 <= boundary <= len(self.chunks):
            msg = f"Boundary out of range: boundary: {boundary}, number of chunks: {len(self.chunks)}"
            raise ValueError(msg)


class Packer:
    """Partition circuits into chunks.

    Operations are appended to the current chunk as long as it fits within the ceilings. When the next operation
    does not fit, the chunk is closed and a new one starts with that operation. A chunk fits if both its program
    and the program disproving it on-chain (see `ChunkCompiler.compile_disprove`) are within the ceilings. The
    partition only depends on the circuit and on the chain parameters.

    Attributes:
        chain_parameters (ChainParameters): The ceilings of the chain.
    """

    def __init__(self, chain_parameters: ChainParameters):
        self.chain_parameters = chain_parameters

    def pack(self, circuit: Circuit, fold: bool = True) -> Program:
        """Compile `circuit` into a program.

        Args:
            circuit (Circuit): The circuit to compile.
            fold (bool): If `True`, constants are folded before packing. Defaults to `True`.

        Returns:
            The program.

        Raises:
            CompilationOverflow: If a single operation does not fit within the ceilings.
        """
        if fold:
            circuit = fold_constants(circuit)

        compiler = ChunkCompiler(circuit, self.chain_parameters)
        n_operations = len(circuit.operations)
        chunks = []
        start = 0
        while start < n_operations:
            index = len(chunks)
            overflow = self.check_ceilings(compiler, start, start + 1, index)
            if overflow is not None:
                resource, measured, ceiling = overflow
                raise CompilationOverflow(circuit.operations[start], resource, measured, ceiling)

            end = start + 1
            while end < n_operations and self.check_ceilings(compiler, start, end + 1, index) is None:
                end += 1

            chunk = compiler.compile(start, end, index=index)
            logger.debug("Chunk %d: operations [%d, %d), %d bytes", index, start, end, chunk.size)
            chunks.append(chunk)
            start = end

        logger.info("Packed %d operations into %d chunks", n_operations, len(chunks))
        return Program(circuit=circuit, chain_parameters=self.chain_parameters, chunks=tuple(chunks))

    @staticmethod
    def check_ceilings(compiler: ChunkCompiler, start: int, end: int, index: int) -> tuple[str, int, int] | None:
        """Return `(resource, measured, ceiling)` if the operations `start, .., end - 1` do not fit in one chunk.

        The program disproving the chunk is checked first, then the program of the chunk.
        """
        disprove = compiler.compile_disprove(start, end, index=index)
        return compiler.check_ceilings(disprove) or compiler.check_ceilings(compiler.compile(start, end, index=index))
