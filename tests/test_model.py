import pytest
import torch

from modules.sentiment import (
    SCORERS,
    AttentionDecoder,
    Encoder,
    OutOfVocabularyError,
    ShapeMismatchError,
    build_model,
    build_scorer,
)


@pytest.fixture
def encoder(small_config):
    return Encoder(small_config.vocab_size, small_config.embedding_dim, small_config.recurrent_units)


def test_encoder_shapes(encoder):
    tokens = torch.tensor([[2, 3, 4, 0], [1, 5, 0, 0]])
    encoded = encoder(tokens, encoder.initialize_hidden_state(2))

    assert encoded.outputs.shape == (2, 4, 6)
    assert encoded.forward_state.shape == (2, 3)
    assert encoded.backward_state.shape == (2, 3)
    assert encoded.query.shape == (2, 6)


def test_encoder_states_match_outputs(encoder):
    tokens = torch.tensor([[2, 3, 4, 0]])
    encoded = encoder(tokens, encoder.initialize_hidden_state(1))

    # Forward direction ends at the last position, backward at the first
    assert torch.allclose(encoded.outputs[:, -1, :3], encoded.forward_state)
    assert torch.allclose(encoded.outputs[:, 0, 3:], encoded.backward_state)


def test_query_is_backward_then_forward(encoder):
    tokens = torch.tensor([[2, 3, 4, 0]])
    encoded = encoder(tokens, encoder.initialize_hidden_state(1))

    assert torch.equal(encoded.query[:, :3], encoded.backward_state)
    assert torch.equal(encoded.query[:, 3:], encoded.forward_state)


def test_encoder_hidden_batch_mismatch(encoder):
    tokens = torch.tensor([[2, 3, 4, 0]])
    with pytest.raises(ShapeMismatchError):
        encoder(tokens, encoder.initialize_hidden_state(2))


def test_encoder_hidden_units_mismatch(encoder):
    tokens = torch.tensor([[2, 3, 4, 0]])
    with pytest.raises(ShapeMismatchError):
        encoder(tokens, torch.zeros(1, 5))


def test_encoder_rejects_unbatched_tokens(encoder):
    with pytest.raises(ShapeMismatchError):
        encoder(torch.tensor([2, 3, 4, 0]), encoder.initialize_hidden_state(1))


@pytest.mark.parametrize("bad_id", [6, 42, -1])
def test_encoder_out_of_vocabulary(encoder, bad_id):
    tokens = torch.tensor([[2, bad_id, 4, 0]])
    with pytest.raises(OutOfVocabularyError):
        encoder(tokens, encoder.initialize_hidden_state(1))


@pytest.mark.parametrize("name", list(SCORERS))
def test_end_to_end_small_scenario(small_config, name):
    model = build_model(small_config, name)
    tokens = torch.tensor([[2, 3, 4, 0]])

    encoded = model.encoder(tokens, model.encoder.initialize_hidden_state(1))
    assert encoded.outputs.shape == (1, 4, 6)
    assert encoded.forward_state.shape == (1, 3)
    assert encoded.backward_state.shape == (1, 3)

    probability, weights = model.decoder(encoded.query, encoded.outputs)
    assert probability.shape == (1,)
    assert 0.0 <= probability.item() <= 1.0
    assert weights.shape == (1, 4)
    assert weights.sum().item() == pytest.approx(1.0, abs=1e-5)


@pytest.mark.parametrize("name", list(SCORERS))
def test_attention_is_distribution(name):
    decoder = AttentionDecoder(build_scorer(name, 8, 4), features=8)
    query = torch.randn(5, 8)
    keys = torch.randn(5, 9, 8)

    _, weights = decoder(query, keys)

    assert torch.all(weights >= 0)
    assert torch.allclose(weights.sum(dim=1), torch.ones(5), atol=1e-5)


@pytest.mark.parametrize("name", list(SCORERS))
def test_context_inside_convex_hull(name):
    decoder = AttentionDecoder(build_scorer(name, 8, 4), features=8)
    query = torch.randn(3, 8)
    keys = torch.randn(3, 6, 8)

    _, weights = decoder(query, keys)
    context = AttentionDecoder.context_vector(weights, keys)

    assert context.shape == (3, 8)
    assert torch.all(context >= keys.min(dim=1).values - 1e-6)
    assert torch.all(context <= keys.max(dim=1).values + 1e-6)


def test_padding_positions_receive_attention(small_config):
    model = build_model(small_config, "multiplicative")
    _, weights = model(torch.tensor([[2, 3, 0, 0, 0]]))

    # No mask is applied: padded positions keep a share of the attention
    assert torch.all(weights[0, 2:] > 0)


@pytest.mark.parametrize("name", list(SCORERS))
def test_forward_is_deterministic(small_config, name):
    model = build_model(small_config, name)
    model.eval()
    tokens = torch.tensor([[1, 2, 3, 5, 0], [1, 4, 4, 4, 5]])

    with torch.no_grad():
        p1, w1 = model(tokens)
        p2, w2 = model(tokens)

    assert torch.equal(p1, p2)
    assert torch.equal(w1, w2)


def test_batched_forward_matches_single(small_config):
    model = build_model(small_config, "additive")
    model.eval()
    tokens = torch.tensor([[1, 2, 3, 5, 0], [1, 4, 4, 4, 5]])

    with torch.no_grad():
        probs, weights = model(tokens)
        for i in range(2):
            p, w = model(tokens[i:i + 1])
            assert torch.allclose(probs[i], p[0], atol=1e-6)
            assert torch.allclose(weights[i], w[0], atol=1e-6)


def test_decoder_shape_mismatch():
    decoder = AttentionDecoder(build_scorer("additive", 6, 4), features=6)
    with pytest.raises(ShapeMismatchError):
        decoder(torch.randn(2, 6), torch.randn(3, 4, 6))


def test_independent_initializations(small_config):
    torch.manual_seed(1)
    a = build_model(small_config, "additive")
    b = build_model(small_config, "additive")

    assert not torch.equal(a.encoder.embedding.weight, b.encoder.embedding.weight)
    assert a.get_num_parameters() == b.get_num_parameters() > 0
