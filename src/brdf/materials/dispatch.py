"""Material dispatch by unified material ID.

This module implements the material operations the integrator calls once per
bounce:

    eval_material(id, wi, wo, n)    -> f, the BRDF value (RGB)
    pdf_material(id, wi, wo, n)     -> marginal sampling density at wi
    sample_material(id, wo, n)      -> (wi, brdf, pdf)
    reflection_brdf(id, wi, wo, n)  -> Blinn-Phong family reflection lobe
    refraction_brdf(id, wi, wo, n)  -> Blinn-Phong family refraction lobe

Invalid material IDs, geometry below the surface and degenerate denominators
all produce zero values; a returned pdf of exactly 0 marks a sample the caller
must discard.

Evaluation walks the flattened plan built by the material library. Sampling
descends the material tree once, flipping a fair coin at every Blinn-Phong
node and a w-weighted coin at every blend, samples the lobe it reaches, then
replays the layer steps from the root to assemble the value and density:

    Blinn-Phong refract step:  value *= 1 - F(wh(wi, wo)),  density *= 1/2
    Metal refract step:        value  = 0,                  density *= 1/2
    First blend reached:       value *= f_blend(wi),
                               density *= w pdf0(wi) + (1 - w) pdf1(wi)

A Blinn-Phong node reports the value and density of the branch it took,
whereas a blend reports its full BRDF against the full mixture density, so
pdf_material() matches the returned pdf whenever the root is a blend or a
diffuse material.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.brdf.materials.dispatch import sample_material
    >>> # Use within a Taichi kernel:
    >>> # wi, brdf, pdf = sample_material(material_id, wo, n)
    >>> # if pdf > 0.0:
    >>> #     throughput *= brdf * ti.max(0.0, ti.math.dot(n, wi)) / pdf
"""

import taichi as ti
import taichi.math as tm

from src.brdf.core.sampling import random_blinn_phong_half_vector, randf
from src.brdf.core.vector import build_tangent_frame, local_to_world, normalize
from src.brdf.materials.blinn_phong import (
    blinn_phong_layer_transmittance,
    eval_blinn_phong_reflection,
    get_blinn_phong_layer,
    get_blinn_phong_r0,
    get_blinn_phong_shininess,
    pdf_blinn_phong_reflection,
    sample_blinn_phong_reflection,
)
from src.brdf.materials.blinn_phong_metal import (
    eval_blinn_phong_metal_reflection,
    eval_blinn_phong_metal_refraction,
    get_metal_color,
    get_metal_core,
)
from src.brdf.materials.diffuse import (
    eval_diffuse,
    get_diffuse_color,
    pdf_diffuse,
    sample_diffuse,
)
from src.brdf.materials.linear_blend import (
    blend_factors,
    get_blend_first,
    get_blend_second,
    get_blend_weight,
)
from src.brdf.scene.library import (
    MAX_TREE_DEPTH,
    EdgeKind,
    MaterialType,
    edge_kinds,
    edge_nodes,
    get_material_type,
    get_material_type_index,
    is_valid_material,
    plan_counts,
    plan_offsets,
    term_edge_counts,
    term_edge_offsets,
    term_lobes,
)

vec3 = tm.vec3

_DIFFUSE = int(MaterialType.DIFFUSE)
_BLINN_PHONG = int(MaterialType.BLINN_PHONG)
_METAL = int(MaterialType.BLINN_PHONG_METAL)
_BLEND = int(MaterialType.LINEAR_BLEND)

_LAYER = int(EdgeKind.LAYER)
_BLEND_FIRST = int(EdgeKind.BLEND_FIRST)


@ti.func
def _blinn_phong_core(mat_type: ti.i32, type_index: ti.i32) -> ti.i32:
    """Blinn-Phong registry index of a Blinn-Phong or metal material."""
    core = type_index
    if mat_type == _METAL:
        core = get_metal_core(type_index)
    return core


# =============================================================================
# Blinn-Phong family lobes
# =============================================================================


@ti.func
def reflection_brdf(material_id: ti.i32, wi: vec3, wo: vec3, n: vec3) -> vec3:
    """Reflection lobe of a Blinn-Phong or metal material (zero otherwise)."""
    mat_type = get_material_type(material_id)
    type_index = get_material_type_index(material_id)
    result = vec3(0.0, 0.0, 0.0)
    if mat_type == _BLINN_PHONG:
        s = get_blinn_phong_shininess(type_index)
        r0 = get_blinn_phong_r0(type_index)
        brdf = eval_blinn_phong_reflection(wi, wo, n, s, r0)
        result = vec3(brdf, brdf, brdf)
    elif mat_type == _METAL:
        core = get_metal_core(type_index)
        s = get_blinn_phong_shininess(core)
        r0 = get_blinn_phong_r0(core)
        result = eval_blinn_phong_metal_reflection(get_metal_color(type_index), wi, wo, n, s, r0)
    return result


@ti.func
def refraction_brdf(material_id: ti.i32, wi: vec3, wo: vec3, n: vec3) -> vec3:
    """Refraction lobe of a Blinn-Phong material: (1 - F) * f_layer.

    Zero for a coating without a layer, for metals, and for other types.
    """
    mat_type = get_material_type(material_id)
    type_index = get_material_type_index(material_id)
    result = vec3(0.0, 0.0, 0.0)
    if mat_type == _BLINN_PHONG:
        layer = get_blinn_phong_layer(type_index)
        if layer >= 0:
            r0 = get_blinn_phong_r0(type_index)
            result = blinn_phong_layer_transmittance(wi, wo, r0) * eval_material(
                layer, wi, wo, n
            )
    elif mat_type == _METAL:
        result = eval_blinn_phong_metal_refraction()
    return result


# =============================================================================
# Plan evaluation
# =============================================================================


@ti.func
def _lobe_value(lobe_id: ti.i32, wi: vec3, wo: vec3, n: vec3) -> vec3:
    mat_type = get_material_type(lobe_id)
    result = vec3(0.0, 0.0, 0.0)
    if mat_type == _DIFFUSE:
        result = eval_diffuse(get_diffuse_color(get_material_type_index(lobe_id)), wi, wo, n)
    else:
        result = reflection_brdf(lobe_id, wi, wo, n)
    return result


@ti.func
def _lobe_pdf(lobe_id: ti.i32, wi: vec3, wo: vec3, n: vec3) -> ti.f32:
    mat_type = get_material_type(lobe_id)
    type_index = get_material_type_index(lobe_id)
    pdf = 0.0
    if mat_type == _DIFFUSE:
        pdf = pdf_diffuse(n, wi)
    elif mat_type == _BLINN_PHONG or mat_type == _METAL:
        if tm.dot(wo, n) > 0.0:
            s = get_blinn_phong_shininess(_blinn_phong_core(mat_type, type_index))
            pdf = 0.5 * pdf_blinn_phong_reflection(wi, wo, n, s)
    return pdf


@ti.func
def _edge_value_factor(node: ti.i32, kind: ti.i32, wi: vec3, wo: vec3) -> ti.f32:
    type_index = get_material_type_index(node)
    factor = 0.0
    if kind == _LAYER:
        if get_material_type(node) == _BLINN_PHONG:
            factor = blinn_phong_layer_transmittance(wi, wo, get_blinn_phong_r0(type_index))
    else:
        w0, w1 = blend_factors(get_blend_weight(type_index))
        factor = w1
        if kind == _BLEND_FIRST:
            factor = w0
    return factor


@ti.func
def _edge_pdf_factor(node: ti.i32, kind: ti.i32, wo: vec3, n: vec3) -> ti.f32:
    factor = 0.0
    if kind == _LAYER:
        if tm.dot(wo, n) > 0.0:
            factor = 0.5
    else:
        w0, w1 = blend_factors(get_blend_weight(get_material_type_index(node)))
        factor = w1
        if kind == _BLEND_FIRST:
            factor = w0
    return factor


@ti.func
def eval_material(material_id: ti.i32, wi: vec3, wo: vec3, n: vec3) -> vec3:
    """Evaluate the BRDF f(wi, wo) of any material.

    Args:
        material_id: The unified material ID.
        wi: Incident direction.
        wo: Outgoing direction.
        n: Surface normal.

    Returns:
        The BRDF value (RGB), zero for invalid IDs.
    """
    result = vec3(0.0, 0.0, 0.0)
    if is_valid_material(material_id) == 1:
        term = plan_offsets[material_id]
        term_end = term + plan_counts[material_id]
        while term < term_end:
            factor = 1.0
            edge = term_edge_offsets[term]
            edge_end = edge + term_edge_counts[term]
            while edge < edge_end:
                factor *= _edge_value_factor(edge_nodes[edge], edge_kinds[edge], wi, wo)
                edge += 1
            if factor > 0.0:
                result += factor * _lobe_value(term_lobes[term], wi, wo, n)
            term += 1
    return result


@ti.func
def pdf_material(material_id: ti.i32, wi: vec3, wo: vec3, n: vec3) -> ti.f32:
    """Solid-angle density with which sample_material produces wi.

    Diffuse: cos/pi. Blinn-Phong family: 1/2 reflection density plus 1/2 the
    layer's density (zero when wo is below the surface). Blend:
    w pdf0 + (1 - w) pdf1.
    """
    pdf = 0.0
    if is_valid_material(material_id) == 1:
        term = plan_offsets[material_id]
        term_end = term + plan_counts[material_id]
        while term < term_end:
            factor = 1.0
            edge = term_edge_offsets[term]
            edge_end = edge + term_edge_counts[term]
            while edge < edge_end:
                factor *= _edge_pdf_factor(edge_nodes[edge], edge_kinds[edge], wo, n)
                edge += 1
            if factor > 0.0:
                pdf += factor * _lobe_pdf(term_lobes[term], wi, wo, n)
            term += 1
    return pdf


# =============================================================================
# Sampling
# =============================================================================


@ti.func
def sample_material(material_id: ti.i32, wo: vec3, n: vec3):
    """Importance-sample an incident direction for any material.

    Args:
        material_id: The unified material ID.
        wo: Outgoing direction.
        n: Surface normal.

    Returns:
        A tuple (wi, brdf, pdf). brdf is the BRDF value at wi (not divided
        by the pdf). pdf is 0, with brdf zero, for samples to discard.
    """
    wi = n
    brdf = vec3(0.0, 0.0, 0.0)
    pdf = 0.0

    # Descend to a leaf lobe
    node = material_id
    depth = 0
    searching = is_valid_material(material_id)
    while searching == 1 and depth < MAX_TREE_DEPTH:
        mat_type = get_material_type(node)
        type_index = get_material_type_index(node)
        if mat_type == _DIFFUSE:
            wi, brdf, pdf = sample_diffuse(get_diffuse_color(type_index), wo, n)
            searching = 0
        elif mat_type == _BLINN_PHONG or mat_type == _METAL:
            core = _blinn_phong_core(mat_type, type_index)
            s = get_blinn_phong_shininess(core)
            tangent, bitangent, normal = build_tangent_frame(n)
            wh = normalize(
                local_to_world(random_blinn_phong_half_vector(s), tangent, bitangent, normal)
            )
            if tm.dot(wo, n) <= 0.0:
                searching = 0
            elif randf() < 0.5:
                wi, pdf = sample_blinn_phong_reflection(wo, n, wh, s)
                pdf *= 0.5
                brdf = reflection_brdf(node, wi, wo, n)
                searching = 0
            else:
                layer = get_blinn_phong_layer(core)
                if layer < 0:
                    searching = 0
                else:
                    node = layer
                    depth += 1
        elif mat_type == _BLEND:
            w = get_blend_weight(type_index)
            if randf() < w:
                node = get_blend_first(type_index)
            else:
                node = get_blend_second(type_index)
            depth += 1
        else:
            searching = 0

    if searching == 1 or pdf <= 0.0:
        # Ran out of depth, hit a missing layer or produced a degenerate sample
        brdf = vec3(0.0, 0.0, 0.0)
        pdf = 0.0
    else:
        # Replay the layer steps from the root down to the first blend
        value_scale = 1.0
        density_scale = 1.0
        blend_node = -1
        node = material_id
        step = 0
        while step < depth and blend_node < 0:
            mat_type = get_material_type(node)
            type_index = get_material_type_index(node)
            if mat_type == _BLINN_PHONG:
                value_scale *= blinn_phong_layer_transmittance(
                    wi, wo, get_blinn_phong_r0(type_index)
                )
                density_scale *= 0.5
                node = get_blinn_phong_layer(type_index)
            elif mat_type == _METAL:
                value_scale = 0.0
                density_scale *= 0.5
                node = get_blinn_phong_layer(get_metal_core(type_index))
            else:
                blend_node = node
            step += 1

        if blend_node >= 0:
            brdf = value_scale * eval_material(blend_node, wi, wo, n)
            pdf = density_scale * pdf_material(blend_node, wi, wo, n)
        else:
            brdf = value_scale * brdf
            pdf = density_scale * pdf
        if pdf <= 0.0:
            brdf = vec3(0.0, 0.0, 0.0)
            pdf = 0.0

    return wi, brdf, pdf
