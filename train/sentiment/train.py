"""
Sentiment Classifier Training Script

This script trains the encoder/attention-decoder sentiment classifier
once per compatibility function (additive, multiplicative,
activated-general) on the same data and records per-epoch loss and
accuracy for the training and validation sets.
"""

import argparse
import logging
import random
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd
import torch
import torch.nn as nn
from torch.optim import Adam
from torch.utils.data import DataLoader, TensorDataset
from torch.utils.tensorboard import SummaryWriter
from sklearn.metrics import accuracy_score
from tqdm import tqdm

from modules.sentiment.config import detect_device
from modules.sentiment.errors import NumericInstabilityError, ShapeMismatchError
from modules.sentiment.model import AttentionClassifier, build_model
from modules.sentiment.scorers import SCORERS

from .config import TrainConfig


logger = logging.getLogger("sentiment.training")


def set_seed(seed: int):
    """Set random seed for reproducibility."""
    random.seed(seed)
    np.random.seed(seed)
    torch.manual_seed(seed)
    if torch.cuda.is_available():
        torch.cuda.manual_seed_all(seed)


def get_device() -> str:
    """Auto-detect the best available device."""
    return detect_device()


@dataclass
class EpochMetrics:
    """Whole-set loss and accuracy after one epoch."""
    epoch: int
    train_loss: float
    train_accuracy: float
    val_loss: float
    val_accuracy: float


@dataclass
class TrainingState:
    """Per-epoch metrics collected during one training run."""
    scorer: str
    history: List[EpochMetrics] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.history)

    @property
    def train_loss(self) -> List[float]:
        return [m.train_loss for m in self.history]

    @property
    def train_accuracy(self) -> List[float]:
        return [m.train_accuracy for m in self.history]

    @property
    def val_loss(self) -> List[float]:
        return [m.val_loss for m in self.history]

    @property
    def val_accuracy(self) -> List[float]:
        return [m.val_accuracy for m in self.history]

    def to_frame(self) -> pd.DataFrame:
        """One row per epoch, tagged with the scorer name."""
        frame = pd.DataFrame([asdict(m) for m in self.history], columns=[
            "epoch", "train_loss", "train_accuracy", "val_loss", "val_accuracy",
        ])
        frame.insert(0, "scorer", self.scorer)
        return frame


def to_tensors(tokens, labels) -> Tuple[torch.Tensor, torch.Tensor]:
    """
    Convert an id matrix and a label vector to tensors and validate them.

    Args:
        tokens: Integer ids, shape (num_examples, max_len), right-padded with 0
        labels: Binary labels, shape (num_examples,)

    Returns:
        Tuple of (LongTensor tokens, FloatTensor labels)
    """
    tokens = torch.as_tensor(np.asarray(tokens), dtype=torch.long)
    labels = torch.as_tensor(np.asarray(labels), dtype=torch.float32)

    if tokens.dim() != 2:
        raise ShapeMismatchError(f"Expected tokens (num_examples, max_len), got {tuple(tokens.shape)}")
    if labels.dim() != 1 or labels.size(0) != tokens.size(0):
        raise ShapeMismatchError(
            f"Got {tuple(labels.shape)} labels for {tokens.size(0)} sequences"
        )
    if tokens.size(0) == 0:
        raise ValueError("Got an empty set of sequences")
    if not torch.all((labels == 0) | (labels == 1)):
        raise ValueError("Labels must be 0 or 1")

    return tokens, labels


def make_loader(
    tokens: torch.Tensor,
    labels: torch.Tensor,
    batch_size: int,
    seed: int,
) -> DataLoader:
    """
    Loader that reshuffles the full set every epoch and drops the last
    partial batch, so every batch holds exactly `batch_size` examples.
    """
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    if tokens.size(0) < batch_size:
        raise ValueError(
            f"Training set has {tokens.size(0)} examples, fewer than one batch of {batch_size}"
        )

    generator = torch.Generator()
    generator.manual_seed(seed)

    return DataLoader(
        TensorDataset(tokens, labels),
        batch_size=batch_size,
        shuffle=True,
        drop_last=True,
        generator=generator,
        num_workers=0,
    )


def ensure_finite(value: torch.Tensor, what: str):
    """Raise NumericInstabilityError if `value` holds NaN or inf."""
    if not torch.isfinite(value).all():
        raise NumericInstabilityError(f"Non-finite {what}")


def train_step(model, tokens, labels, optimizer, criterion) -> float:
    """
    One forward/backward pass and optimizer update on a single batch.

    Returns:
        Batch loss
    """
    optimizer.zero_grad()
    probability, _ = model(tokens)
    ensure_finite(probability.detach(), "model output")
    loss = criterion(probability, labels)
    ensure_finite(loss.detach(), "loss")

    loss.backward()
    for name, param in model.named_parameters():
        if param.grad is not None:
            ensure_finite(param.grad, f"gradient for {name}")

    optimizer.step()
    return loss.item()


def train_epoch(model, dataloader, optimizer, criterion, device, epoch=0, cfg: TrainConfig = None):
    """
    Train for one epoch.

    Args:
        model: Model to train
        dataloader: Training dataloader
        optimizer: Optimizer
        criterion: Loss function
        device: Device to train on
        epoch: Epoch number, used in messages
        cfg: Training configuration (progress bar, logging interval)

    Returns:
        Average batch loss for the epoch
    """
    cfg = cfg or TrainConfig()
    model.train()
    total_loss = 0.0
    steps = 0

    for tokens, labels in tqdm(dataloader, desc=f"Epoch {epoch}", leave=False,
                               disable=not cfg.show_progress):
        tokens, labels = tokens.to(device), labels.to(device)
        try:
            loss = train_step(model, tokens, labels, optimizer, criterion)
        except NumericInstabilityError as exc:
            raise NumericInstabilityError(f"{exc} at epoch {epoch}, batch {steps + 1}") from exc

        total_loss += loss
        steps += 1
        if cfg.log_every_n_steps > 0 and steps % cfg.log_every_n_steps == 0:
            logger.debug("epoch %d step %d: loss=%.4f", epoch, steps, loss)

    return total_loss / max(steps, 1)


def evaluate(model, tokens, labels, criterion, device, threshold: float = 0.5):
    """
    Evaluate model on a whole set in one pass, without gradients.

    Args:
        model: Model to evaluate
        tokens: Token ids, shape (num_examples, max_len)
        labels: Binary labels, shape (num_examples,)
        criterion: Loss function
        device: Device to evaluate on
        threshold: Probability above which a prediction counts as positive

    Returns:
        Tuple of (loss, accuracy)
    """
    was_training = model.training
    model.eval()

    try:
        with torch.no_grad():
            tokens, labels = tokens.to(device), labels.to(device)
            probability, _ = model(tokens)
            ensure_finite(probability, "model output")
            loss = criterion(probability, labels)
            ensure_finite(loss, "evaluation loss")

            predictions = (probability > threshold).long().cpu().numpy()
            accuracy = accuracy_score(labels.long().cpu().numpy(), predictions)
    finally:
        model.train(was_training)

    return loss.item(), float(accuracy)


def train(
    model: AttentionClassifier,
    train_tokens,
    train_labels,
    val_tokens,
    val_labels,
    cfg: TrainConfig,
) -> TrainingState:
    """
    Main training function.

    Args:
        model: Freshly built encoder/decoder pair
        train_tokens: Training id matrix (num_examples, max_len)
        train_labels: Training labels (num_examples,)
        val_tokens: Validation id matrix
        val_labels: Validation labels
        cfg: Training configuration

    Returns:
        TrainingState with one EpochMetrics entry per epoch
    """
    set_seed(cfg.seed)
    device = cfg.device or get_device()
    model.to(device)

    train_x, train_y = to_tensors(train_tokens, train_labels)
    val_x, val_y = to_tensors(val_tokens, val_labels)
    train_loader = make_loader(train_x, train_y, cfg.batch_size, cfg.seed)

    criterion = nn.BCELoss()
    if cfg.learning_rate is None:
        optimizer = Adam(model.parameters())
    else:
        optimizer = Adam(model.parameters(), lr=cfg.learning_rate)

    writer = None
    if cfg.log_dir:
        writer = SummaryWriter(log_dir=str(Path(cfg.log_dir) / model.scorer_name))

    state = TrainingState(scorer=model.scorer_name)
    logger.info(
        "Training %s scorer for %d epochs (%d batches/epoch) on %s",
        model.scorer_name, cfg.n_epochs, len(train_loader), device,
    )

    try:
        for epoch in range(1, cfg.n_epochs + 1):
            batch_loss = train_epoch(model, train_loader, optimizer, criterion, device, epoch, cfg)

            try:
                train_loss, train_acc = evaluate(model, train_x, train_y, criterion, device, cfg.threshold)
                val_loss, val_acc = evaluate(model, val_x, val_y, criterion, device, cfg.threshold)
            except NumericInstabilityError as exc:
                raise NumericInstabilityError(f"{exc} while scoring epoch {epoch}") from exc

            metrics = EpochMetrics(epoch, train_loss, train_acc, val_loss, val_acc)
            state.history.append(metrics)

            logger.info(
                "[%s] Epoch %d/%d: batch_loss=%.4f | train_loss=%.4f train_acc=%.4f | "
                "val_loss=%.4f val_acc=%.4f",
                model.scorer_name, epoch, cfg.n_epochs, batch_loss,
                train_loss, train_acc, val_loss, val_acc,
            )

            if writer:
                writer.add_scalar('train/loss', train_loss, epoch)
                writer.add_scalar('train/accuracy', train_acc, epoch)
                writer.add_scalar('val/loss', val_loss, epoch)
                writer.add_scalar('val/accuracy', val_acc, epoch)
    finally:
        if writer:
            writer.flush()
            writer.close()

    return state


def compare_scorers(
    train_tokens,
    train_labels,
    val_tokens,
    val_labels,
    cfg: TrainConfig,
    scorers: Optional[Iterable[str]] = None,
) -> Dict[str, TrainingState]:
    """
    Train one fresh model per compatibility function on identical data.

    Every run is seeded the same way, so the variants see the same
    shuffle order and the same encoder initialization.

    Returns:
        Mapping scorer name -> TrainingState
    """
    results = {}
    for name in (scorers or list(SCORERS)):
        set_seed(cfg.seed)
        model = build_model(cfg.model_config(), name)
        logger.info("Model (%s) parameters: %s", name, f"{model.get_num_parameters():,}")
        results[name] = train(model, train_tokens, train_labels, val_tokens, val_labels, cfg)
    return results


def metrics_frame(results: Dict[str, TrainingState]) -> pd.DataFrame:
    """Stack the per-epoch metrics of several runs into one table."""
    return pd.concat([state.to_frame() for state in results.values()], ignore_index=True)


def load_arrays(npz_path: str) -> dict:
    """
    Load already-indexed data from an .npz archive.

    Expected keys: train_tokens, train_labels, val_tokens, val_labels and,
    optionally, vocab_size.
    """
    with np.load(npz_path) as archive:
        missing = {"train_tokens", "train_labels", "val_tokens", "val_labels"} - set(archive.files)
        if missing:
            raise KeyError(f"{npz_path} is missing arrays: {', '.join(sorted(missing))}")
        data = {key: archive[key] for key in archive.files}

    if "vocab_size" in data:
        data["vocab_size"] = int(data["vocab_size"])
    else:
        data["vocab_size"] = int(max(data["train_tokens"].max(), data["val_tokens"].max())) + 1
    return data


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Train and compare Sentiment attention scorers")
    parser.add_argument(
        '--data', type=str, required=True,
        help='Path to .npz with train_tokens, train_labels, val_tokens, val_labels'
    )
    parser.add_argument(
        '--scorer', type=str, default='all', choices=['all', *SCORERS],
        help='Compatibility function to train (default: all)'
    )
    parser.add_argument(
        '--output-dir', type=str, default='./output',
        help='Output directory for the metrics CSV'
    )

    # Allow overriding config parameters
    parser.add_argument('--epochs', type=int, help='Number of epochs')
    parser.add_argument('--batch-size', type=int, help='Batch size')
    parser.add_argument('--lr', type=float, help='Learning rate (default: Adam default)')
    parser.add_argument('--embedding-dim', type=int, help='Embedding dimension')
    parser.add_argument('--units', type=int, help='Recurrent units per direction')
    parser.add_argument('--dense-units', type=int, help='Scorer projection width')
    parser.add_argument('--seed', type=int, help='Random seed')
    parser.add_argument('--tensorboard', action='store_true', help='Write TensorBoard logs')
    parser.add_argument('--no-progress', action='store_true', help='Hide progress bars')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    data = load_arrays(args.data)

    # Create config
    cfg = TrainConfig(vocab_size=data["vocab_size"])
    if args.epochs:
        cfg.n_epochs = args.epochs
    if args.batch_size:
        cfg.batch_size = args.batch_size
    if args.lr:
        cfg.learning_rate = args.lr
    if args.embedding_dim:
        cfg.embedding_dim = args.embedding_dim
    if args.units:
        cfg.recurrent_units = args.units
    if args.dense_units:
        cfg.dense_units = args.dense_units
    if args.seed is not None:
        cfg.seed = args.seed
    if args.tensorboard:
        cfg.log_dir = str(output_dir / 'tb')
    cfg.show_progress = not args.no_progress

    logger.info("Vocabulary size: %d", cfg.vocab_size)
    logger.info(
        "Train: %d, Val: %d, max_len: %d",
        len(data["train_tokens"]), len(data["val_tokens"]), data["train_tokens"].shape[1],
    )

    scorers = None if args.scorer == 'all' else [args.scorer]
    results = compare_scorers(
        data["train_tokens"], data["train_labels"],
        data["val_tokens"], data["val_labels"],
        cfg, scorers=scorers,
    )

    frame = metrics_frame(results)
    metrics_path = output_dir / 'metrics.csv'
    frame.to_csv(metrics_path, index=False)
    logger.info("Saved per-epoch metrics to %s", metrics_path)

    for name, state in results.items():
        if not state.history:
            continue
        last = state.history[-1]
        logger.info(
            "%s: final val_loss=%.4f val_acc=%.4f", name, last.val_loss, last.val_accuracy
        )


if __name__ == '__main__':
    main()
