"""
Q-Network
=========

A fixed three-layer feedforward network that approximates Q-values:

    input -> hidden1 (ReLU) -> hidden2 (ReLU) -> output (linear)

Everything is written out by hand over float64 torch tensors: the forward
pass, the ReLU gate, backpropagation and the SGD update. Tensors are used as
plain dense arrays; autograd, nn.Module and optimizers are never involved.

Training is single-head regression. For a sampled transition only the output
unit of the action that was taken receives an error signal:

    delta_out[a] = Q(s, a) - target,    delta_out[other] = 0

and every layer is updated in the same pass with

    W -= lr * outer(layer_input, delta)
    b -= lr * delta

Weights are never clipped and NaNs are not guarded against.

Persistence:
    Models are written with torch.save as a self-describing dict tagged with
    a format name and version. QNetwork.load() also understands the earlier
    (version 1) layout and upgrades it in memory.
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import torch

from .errors import ModelLoadError, NetworkConfigError, ShapeMismatchError
from snake_duel.utils.logger import get_logger

_logger = get_logger(__name__)

ArrayLike = Union[np.ndarray, Sequence[float], torch.Tensor]

DTYPE = torch.float64

FORMAT_NAME = 'snake_duel.qnetwork'
FORMAT_VERSION = 2

_CURRENT_KEYS = (
    'input_size', 'hidden_size_1', 'hidden_size_2', 'output_size', 'learning_rate',
    'w1', 'b1', 'w2', 'b2', 'w3', 'b3',
)

# Version 1 kept unused 2-D bias fields (B1, B2, B3) next to the real bias vectors
_LEGACY_KEYS = (
    'W1', 'B1Vec', 'W2', 'B2Vec', 'W3', 'B3Vec',
    'InputSize', 'HiddenSize1', 'HiddenSize2', 'OutputSize', 'LearningRate',
)


@dataclass
class ForwardCache:
    """Intermediate values of one forward pass, consumed by backward()."""
    input: torch.Tensor
    z1: torch.Tensor  # hidden1 pre-activation
    h1: torch.Tensor  # hidden1 post-activation
    z2: torch.Tensor
    h2: torch.Tensor


@dataclass
class NetworkWeights:
    """Decoded contents of a model file."""
    input_size: int
    hidden_size_1: int
    hidden_size_2: int
    output_size: int
    learning_rate: float
    w1: torch.Tensor
    b1: torch.Tensor
    w2: torch.Tensor
    b2: torch.Tensor
    w3: torch.Tensor
    b3: torch.Tensor
    version: int = FORMAT_VERSION


def _relu(z: torch.Tensor) -> torch.Tensor:
    return torch.where(z > 0, z, torch.zeros_like(z))


def _relu_derivative(z: torch.Tensor) -> torch.Tensor:
    # 1 where z > 0, else 0 (zero itself is gated off, same as _relu)
    return (z > 0).to(z.dtype)


def _xavier_init(fan_in: int, fan_out: int, generator: torch.Generator) -> torch.Tensor:
    """Xavier/Glorot normal initialization, std = sqrt(2 / (fan_in + fan_out))."""
    std = (2.0 / (fan_in + fan_out)) ** 0.5
    return torch.randn(fan_in, fan_out, generator=generator, dtype=DTYPE) * std


class QNetwork:
    """
    Hand-written Deep Q-Network.

    Attributes:
        w1, w2, w3: Weight matrices shaped (fan_in, fan_out)
        b1, b2, b3: Bias vectors shaped (fan_out,)
        input_size, hidden_size_1, hidden_size_2, output_size: Layer widths
        learning_rate: SGD step size

    Example:
        >>> net = QNetwork(22, 128, 64, 3, learning_rate=0.001, seed=7)
        >>> q_values = net.forward(np.zeros(22))
        >>> q_values.shape
        (3,)
    """

    def __init__(
        self,
        input_size: int,
        hidden_size_1: int,
        hidden_size_2: int,
        output_size: int,
        learning_rate: float,
        seed: Optional[int] = None
    ):
        """
        Initialize the network with Xavier-scaled random weights and zero biases.

        Args:
            input_size: Width of the state vector
            hidden_size_1: Width of the first hidden layer
            hidden_size_2: Width of the second hidden layer
            output_size: Number of actions
            learning_rate: SGD step size
            seed: Seed for weight initialization (None = nondeterministic)

        Raises:
            NetworkConfigError: If any width is < 1 or the learning rate is not
                a positive finite number
        """
        dims = {
            'input_size': input_size,
            'hidden_size_1': hidden_size_1,
            'hidden_size_2': hidden_size_2,
            'output_size': output_size,
        }
        for name, value in dims.items():
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < 1:
                raise NetworkConfigError(f"{name} must be a positive integer, got {value!r}")
        if not np.isfinite(learning_rate) or learning_rate <= 0:
            raise NetworkConfigError(f"learning_rate must be positive, got {learning_rate!r}")

        self.input_size = int(input_size)
        self.hidden_size_1 = int(hidden_size_1)
        self.hidden_size_2 = int(hidden_size_2)
        self.output_size = int(output_size)
        self.learning_rate = float(learning_rate)

        generator = torch.Generator()
        if seed is None:
            generator.seed()
        else:
            generator.manual_seed(seed)

        self.w1 = _xavier_init(self.input_size, self.hidden_size_1, generator)
        self.b1 = torch.zeros(self.hidden_size_1, dtype=DTYPE)

        self.w2 = _xavier_init(self.hidden_size_1, self.hidden_size_2, generator)
        self.b2 = torch.zeros(self.hidden_size_2, dtype=DTYPE)

        self.w3 = _xavier_init(self.hidden_size_2, self.output_size, generator)
        self.b3 = torch.zeros(self.output_size, dtype=DTYPE)

    # -------------------------------------------------------------------------
    # Forward
    # -------------------------------------------------------------------------

    def _as_input(self, values: ArrayLike) -> torch.Tensor:
        x = torch.as_tensor(values, dtype=DTYPE)
        if x.dim() != 1 or x.shape[0] != self.input_size:
            raise ShapeMismatchError(
                f"Expected input of length {self.input_size}, got shape {tuple(x.shape)}"
            )
        return x

    def forward(self, values: ArrayLike) -> np.ndarray:
        """
        Compute Q-values for one state.

        Args:
            values: State vector of length input_size

        Returns:
            Q-values, shape (output_size,)

        Raises:
            ShapeMismatchError: If the input length is wrong
        """
        x = self._as_input(values)
        h1 = _relu(x @ self.w1 + self.b1)
        h2 = _relu(h1 @ self.w2 + self.b2)
        return (h2 @ self.w3 + self.b3).numpy()

    def forward_with_cache(self, values: ArrayLike) -> Tuple[np.ndarray, ForwardCache]:
        """Same as forward(), also returning the activations backward() needs."""
        x = self._as_input(values).clone()

        z1 = x @ self.w1 + self.b1
        h1 = _relu(z1)

        z2 = h1 @ self.w2 + self.b2
        h2 = _relu(z2)

        output = h2 @ self.w3 + self.b3
        return output.numpy(), ForwardCache(input=x, z1=z1, h1=h1, z2=z2, h2=h2)

    # -------------------------------------------------------------------------
    # Backward
    # -------------------------------------------------------------------------

    def backward(
        self,
        cache: ForwardCache,
        output: ArrayLike,
        action_index: int,
        target_value: float
    ) -> None:
        """
        Backpropagate the TD error of one action and update all weights.

        Args:
            cache: Activations from forward_with_cache()
            output: Q-values returned by that same forward_with_cache() call
            action_index: Action whose Q-value is regressed toward the target
            target_value: TD target for that action

        Raises:
            ShapeMismatchError: If action_index is outside the output layer
        """
        if not 0 <= action_index < self.output_size:
            raise ShapeMismatchError(
                f"Action index {action_index} out of range for {self.output_size} outputs"
            )

        d_output = torch.zeros(self.output_size, dtype=DTYPE)
        d_output[action_index] = float(output[action_index]) - float(target_value)

        d_h2 = self._linear_backward(cache.h2, self.w3, self.b3, d_output)
        d_z2 = d_h2 * _relu_derivative(cache.z2)

        d_h1 = self._linear_backward(cache.h1, self.w2, self.b2, d_z2)
        d_z1 = d_h1 * _relu_derivative(cache.z1)

        self._linear_backward(cache.input, self.w1, self.b1, d_z1)

    def _linear_backward(
        self,
        inputs: torch.Tensor,
        weights: torch.Tensor,
        bias: torch.Tensor,
        d_output: torch.Tensor
    ) -> torch.Tensor:
        """Return dLoss/dInput (using the pre-update weights), then apply SGD in place."""
        d_input = weights @ d_output
        weights.sub_(self.learning_rate * torch.outer(inputs, d_output))
        bias.sub_(self.learning_rate * d_output)
        return d_input

    # -------------------------------------------------------------------------
    # Copying
    # -------------------------------------------------------------------------

    @property
    def dims(self) -> Tuple[int, int, int, int]:
        return (self.input_size, self.hidden_size_1, self.hidden_size_2, self.output_size)

    def copy_from(self, other: 'QNetwork') -> None:
        """
        Overwrite this network's weights and biases with copies of `other`'s.

        Raises:
            NetworkConfigError: If the two networks have different layer widths
        """
        if other.dims != self.dims:
            raise NetworkConfigError(f"Cannot copy {other.dims} network into {self.dims} network")
        self.w1.copy_(other.w1)
        self.b1.copy_(other.b1)
        self.w2.copy_(other.w2)
        self.b2.copy_(other.b2)
        self.w3.copy_(other.w3)
        self.b3.copy_(other.b3)

    def clone(self) -> 'QNetwork':
        """Deep copy. The clone shares no storage with this network."""
        twin = QNetwork(*self.dims, learning_rate=self.learning_rate, seed=0)
        twin.copy_from(self)
        return twin

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def get_weights(self) -> List[np.ndarray]:
        """Copies of the three weight matrices (for visualization)."""
        return [w.numpy().copy() for w in (self.w1, self.w2, self.w3)]

    def get_biases(self) -> List[np.ndarray]:
        return [b.numpy().copy() for b in (self.b1, self.b2, self.b3)]

    def count_parameters(self) -> int:
        """Return total number of trainable parameters."""
        return sum(t.numel() for t in (self.w1, self.b1, self.w2, self.b2, self.w3, self.b3))

    def __repr__(self) -> str:
        return (f"QNetwork({self.input_size} -> {self.hidden_size_1} -> {self.hidden_size_2}"
                f" -> {self.output_size}, lr={self.learning_rate})")

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def save(self, path: str) -> None:
        """Write dimensions, learning rate and all weights to `path`."""
        dir_path = os.path.dirname(path)
        if dir_path:
            os.makedirs(dir_path, exist_ok=True)

        payload = {
            'format': FORMAT_NAME,
            'version': FORMAT_VERSION,
            'input_size': self.input_size,
            'hidden_size_1': self.hidden_size_1,
            'hidden_size_2': self.hidden_size_2,
            'output_size': self.output_size,
            'learning_rate': self.learning_rate,
            'w1': self.w1.clone(),
            'b1': self.b1.clone(),
            'w2': self.w2.clone(),
            'b2': self.b2.clone(),
            'w3': self.w3.clone(),
            'b3': self.b3.clone(),
        }
        torch.save(payload, path)

    @classmethod
    def load(cls, path: str) -> 'QNetwork':
        """
        Load a network saved in the current or the legacy layout.

        Raises:
            ModelLoadError: If the file is missing, unreadable, or matches
                neither layout
        """
        weights = read_weights(path)
        if weights.version != FORMAT_VERSION:
            _logger.debug(f"Upgraded version {weights.version} model from {path}")

        try:
            net = cls(
                weights.input_size,
                weights.hidden_size_1,
                weights.hidden_size_2,
                weights.output_size,
                learning_rate=weights.learning_rate,
                seed=0,
            )
        except NetworkConfigError as e:
            raise ModelLoadError(f"Invalid dimensions in {path}: {e}") from e

        net.w1, net.b1 = weights.w1, weights.b1
        net.w2, net.b2 = weights.w2, weights.b2
        net.w3, net.b3 = weights.w3, weights.b3
        return net


# =============================================================================
# DECODING
# =============================================================================

def read_weights(path: str) -> NetworkWeights:
    """
    Read and decode a model file without building a network.

    The current layout is tried first, then the legacy layout.

    Raises:
        ModelLoadError: If the file is missing, unreadable, or undecodable
    """
    if not os.path.exists(path):
        raise ModelLoadError(f"Model file not found: {path}")

    try:
        payload = torch.load(path, map_location='cpu', weights_only=True)
    except Exception as e:
        raise ModelLoadError(f"Failed to read model {path}: {e}") from e

    weights = _decode_current(payload)
    if weights is None:
        weights = _decode_legacy(payload)
    if weights is None:
        raise ModelLoadError(f"Unrecognized model format in {path}")

    _check_shapes(weights, path)
    return weights


def _tensor(value: Any) -> torch.Tensor:
    return torch.as_tensor(value, dtype=DTYPE).clone()


def _decode_current(payload: Any) -> Optional[NetworkWeights]:
    if not isinstance(payload, dict):
        return None
    if payload.get('format') != FORMAT_NAME or payload.get('version') != FORMAT_VERSION:
        return None
    if any(key not in payload for key in _CURRENT_KEYS):
        return None

    return NetworkWeights(
        input_size=int(payload['input_size']),
        hidden_size_1=int(payload['hidden_size_1']),
        hidden_size_2=int(payload['hidden_size_2']),
        output_size=int(payload['output_size']),
        learning_rate=float(payload['learning_rate']),
        w1=_tensor(payload['w1']),
        b1=_tensor(payload['b1']),
        w2=_tensor(payload['w2']),
        b2=_tensor(payload['b2']),
        w3=_tensor(payload['w3']),
        b3=_tensor(payload['b3']),
        version=FORMAT_VERSION,
    )


def _decode_legacy(payload: Any) -> Optional[NetworkWeights]:
    if not isinstance(payload, dict):
        return None
    if any(key not in payload for key in _LEGACY_KEYS):
        return None

    # The 2-D B1/B2/B3 fields were never used; the *Vec fields hold the biases
    return NetworkWeights(
        input_size=int(payload['InputSize']),
        hidden_size_1=int(payload['HiddenSize1']),
        hidden_size_2=int(payload['HiddenSize2']),
        output_size=int(payload['OutputSize']),
        learning_rate=float(payload['LearningRate']),
        w1=_tensor(payload['W1']),
        b1=_tensor(payload['B1Vec']),
        w2=_tensor(payload['W2']),
        b2=_tensor(payload['B2Vec']),
        w3=_tensor(payload['W3']),
        b3=_tensor(payload['B3Vec']),
        version=1,
    )


def _check_shapes(weights: NetworkWeights, path: str) -> None:
    expected: Dict[str, Tuple[int, ...]] = {
        'w1': (weights.input_size, weights.hidden_size_1),
        'b1': (weights.hidden_size_1,),
        'w2': (weights.hidden_size_1, weights.hidden_size_2),
        'b2': (weights.hidden_size_2,),
        'w3': (weights.hidden_size_2, weights.output_size),
        'b3': (weights.output_size,),
    }
    for name, shape in expected.items():
        actual = tuple(getattr(weights, name).shape)
        if actual != shape:
            raise ModelLoadError(f"{name} in {path} has shape {actual}, expected {shape}")


def max_index(values: ArrayLike) -> int:
    """
    Index of the largest value; the first occurrence wins on ties.

    Scans with a strict greater-than, so a NaN after index 0 is never
    picked (np.argmax would return the first NaN instead).
    """
    values = np.asarray(values, dtype=np.float64)
    best = 0
    for i in range(1, len(values)):
        if values[i] > values[best]:
            best = i
    return best


def max_value(values: ArrayLike) -> float:
    values = np.asarray(values, dtype=np.float64)
    return float(values[max_index(values)])
